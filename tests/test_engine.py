import pytest  # noqa

from entab.records import AssignmentType
from entab.tui._engine import Direction, RecordList

from conftest import FakeRepository, make_records


def _check_invariants(engine: RecordList) -> None:
    idx = engine.selected_index()
    if engine.selected is not None:
        assert idx is not None
        assert engine.visible[idx] == engine.selected
        assert engine.window_start <= idx < engine.window_start + engine.window_size


class TestScenarios:
    """The two-record walk-throughs."""

    def test_next_moves_window(self) -> None:
        engine = RecordList(window_size=1)
        engine.set_records(make_records('Math', 'Art'))
        assert engine.selected is None
        engine.move_selection(Direction.NEXT)
        assert engine.selected.serial == '1'
        assert engine.window_start == 0
        engine.move_selection(Direction.NEXT)
        assert engine.selected.serial == '2'
        assert engine.window_start == 1

    def test_filter_resets_selection(self) -> None:
        engine = RecordList(window_size=1)
        engine.set_records(make_records('Math', 'Art'))
        engine.set_filter('art')
        assert [r.serial for r in engine.visible] == ['2']
        assert engine.selected.serial == '2'


class TestFilter:
    QUERIES = ['', 'a', 'ART', 'math', 'class', 'work', '02/01', 'zzz', ' ', 'science class']

    @pytest.mark.parametrize('query', QUERIES)
    def test_visible_matches_haystack(self, query: str) -> None:
        records = make_records('Math', 'Art', 'Science', 'Maths revision')
        engine = RecordList()
        engine.set_records(records)
        engine.set_filter(query)
        expected = [r for r in records
                    if query.lower() in f'{r.name} {r.category} {r.date}'.lower()]
        assert engine.visible == expected
        _check_invariants(engine)

    def test_empty_query_restores_everything(self) -> None:
        records = make_records('Math', 'Art', 'Science')
        engine = RecordList()
        engine.set_records(records)
        engine.set_filter('sci')
        assert len(engine.visible) == 1
        engine.set_filter('')
        assert engine.visible == records

    def test_filter_is_idempotent(self) -> None:
        engine = RecordList(window_size=2)
        engine.set_records(make_records('Math', 'Art', 'Maths revision'))
        engine.set_filter('math')
        first = (list(engine.visible), engine.selected, engine.window_start)
        engine.set_filter('math')
        assert (list(engine.visible), engine.selected, engine.window_start) == first

    def test_no_match_clears_selection(self) -> None:
        engine = RecordList()
        engine.set_records(make_records('Math', 'Art'))
        engine.move_selection(Direction.NEXT)
        engine.set_filter('nothing like this')
        assert engine.visible == []
        assert engine.selected is None
        assert engine.selected_index() is None
        engine.move_selection(Direction.NEXT)
        assert engine.selected is None
        assert engine.visible_page() == []


class TestNavigation:
    def test_next_wraps_to_first(self) -> None:
        engine = RecordList(window_size=2)
        engine.set_records(make_records('A1', 'A2', 'A3'))
        engine.select_last()
        engine.move_selection(Direction.NEXT)
        assert engine.selected.serial == '1'
        assert engine.window_start == 0

    def test_previous_wraps_to_last(self) -> None:
        engine = RecordList(window_size=2)
        engine.set_records(make_records('A1', 'A2', 'A3'))
        engine.select_first()
        engine.move_selection(Direction.PREVIOUS)
        assert engine.selected.serial == '3'
        _check_invariants(engine)

    def test_previous_without_selection_picks_first(self) -> None:
        engine = RecordList()
        engine.set_records(make_records('A1', 'A2', 'A3'))
        engine.move_selection(Direction.PREVIOUS)
        assert engine.selected.serial == '1'

    @pytest.mark.parametrize('size', [1, 2, 3, 5])
    def test_full_cycle_returns_home(self, size: int) -> None:
        engine = RecordList(window_size=2)
        engine.set_records(make_records(*[f'R{i}' for i in range(size)]))
        engine.move_selection(Direction.NEXT)
        start = engine.selected
        for _ in range(size):
            engine.move_selection(Direction.NEXT)
            _check_invariants(engine)
        assert engine.selected == start
        for _ in range(size):
            engine.move_selection(Direction.PREVIOUS)
            _check_invariants(engine)
        assert engine.selected == start

    def test_navigation_uses_visible_sequence(self) -> None:
        engine = RecordList()
        engine.set_records(make_records('Math', 'Art', 'Maths revision'))
        engine.set_filter('math')
        engine.move_selection(Direction.NEXT)
        assert engine.selected.serial == '3'
        engine.move_selection(Direction.NEXT)
        assert engine.selected.serial == '1'

    def test_select_none(self) -> None:
        engine = RecordList()
        engine.set_records(make_records('Math', 'Art'))
        engine.select_first()
        engine.select_none()
        assert engine.selected is None


class TestWindow:
    def test_window_follows_selection(self) -> None:
        engine = RecordList(window_size=3)
        engine.set_records(make_records(*[f'R{i}' for i in range(10)]))
        for _ in range(7):
            engine.move_selection(Direction.NEXT)
            _check_invariants(engine)
        assert engine.selected_index() == 6
        assert engine.window_start == 4
        assert engine.visible_page()[-1] == engine.selected

    def test_window_moves_minimally_upwards(self) -> None:
        engine = RecordList(window_size=3)
        engine.set_records(make_records(*[f'R{i}' for i in range(10)]))
        engine.select_last()
        assert engine.window_start == 7
        engine.move_selection(Direction.PREVIOUS)
        assert engine.window_start == 7
        for _ in range(3):
            engine.move_selection(Direction.PREVIOUS)
        assert engine.selected_index() == 5
        assert engine.window_start == 5

    def test_shrinking_window_keeps_selection_visible(self) -> None:
        engine = RecordList(window_size=10)
        engine.set_records(make_records(*[f'R{i}' for i in range(10)]))
        engine.select_last()
        engine.set_window_size(4)
        _check_invariants(engine)
        assert engine.window_start == 6
        engine.set_window_size(0)
        assert engine.window_size == 1
        _check_invariants(engine)

    @pytest.mark.parametrize('index,expected_start', [
        (2, 2),
        (7, 5),
        (15, 11),
    ])
    def test_adjust_window_is_idempotent(self, index, expected_start) -> None:
        engine = RecordList(window_size=5)
        engine.set_records(make_records(*[f'R{i}' for i in range(20)]))
        engine.window_start = 5
        engine.adjust_window(index)
        assert engine.window_start == expected_start
        assert engine.window_start <= index < engine.window_start + engine.window_size
        engine.adjust_window(index)
        assert engine.window_start == expected_start


class TestLoad:
    def test_load_replaces_records(self) -> None:
        repo = FakeRepository(records=make_records('Math', 'Art'))
        engine = RecordList(repo)
        engine.set_records(make_records('Old'))
        engine.set_filter('old')
        loaded = engine.load(AssignmentType.CIRCULAR)
        assert [r.name for r in loaded] == ['Math', 'Art']
        assert engine.kind == AssignmentType.CIRCULAR
        assert engine.query == ''
        assert engine.visible == engine.records
        assert engine.selected is None
        assert repo.record_calls == [AssignmentType.CIRCULAR]

    def test_load_failure_keeps_old_records(self) -> None:
        import entab
        repo = FakeRepository(records_error=entab.FetchError('down'))
        engine = RecordList(repo)
        engine.set_records(make_records('Old'))
        with pytest.raises(entab.FetchError):
            engine.load(AssignmentType.HOMEWORK)
        assert [r.name for r in engine.records] == ['Old']

    def test_load_without_repository(self) -> None:
        import entab
        with pytest.raises(entab.FetchError):
            RecordList().load(AssignmentType.HOMEWORK)
