import pytest  # noqa
import entab
import os

from typing import List

from entab.records import Assignment, AssignmentDetails, AssignmentType, Attachment


@pytest.fixture(scope="function", autouse=True)
def settestdefaults(tmp_path):
    os.environ['XDG_DATA_HOME'] = str(tmp_path / 'data')
    os.environ['XDG_CONFIG_HOME'] = str(tmp_path / 'config')
    os.environ['XDG_CACHE_HOME'] = str(tmp_path / 'cache')
    entab.MAIN_CONFIG = dict(entab.DEFAULT_CONFIG)
    entab.MAIN_CONFIG['download-dir'] = str(tmp_path / 'downloads')
    entab.REQSESSION = None


def make_records(*names: str, kind: AssignmentType = AssignmentType.HOMEWORK) -> List[Assignment]:
    return [
        Assignment(serial=str(idx), remote_id=f'id{idx}', name=name, date=f'0{idx}/01/2025',
                   category='Class Work', kind=kind)
        for idx, name in enumerate(names, start=1)
    ]


class FakeRepository:
    """In-memory stand-in for the portal."""

    def __init__(self, records=None, details=None, records_error=None, details_error=None):
        self.records = records if records is not None else make_records('Math', 'Art', 'Science')
        self.details = details if details is not None else AssignmentDetails(
            text='Read chapter 4', attachments=[Attachment('sheet.pdf', 'files/sheet.pdf')])
        self.records_error = records_error
        self.details_error = details_error
        self.record_calls: List[AssignmentType] = list()
        self.detail_calls: List[Assignment] = list()

    def fetch_records(self, kind):
        self.record_calls.append(kind)
        if self.records_error is not None:
            raise self.records_error
        return list(self.records)

    def fetch_details(self, record):
        self.detail_calls.append(record)
        if self.details_error is not None:
            raise self.details_error
        return self.details


class FakeDownloader:
    def __init__(self, error=None):
        self.error = error
        self.calls: list = list()

    def download(self, attachments):
        self.calls.append(tuple(attachments))
        if self.error is not None:
            raise self.error
        return [a.name for a in attachments]


@pytest.fixture(scope="function")
def repository():
    return FakeRepository()
