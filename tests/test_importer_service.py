import pytest

from kimai_import.config import Settings
from kimai_import.exceptions import (
    AmbiguousFormatError,
    DelimiterMismatchError,
    EmptyInputError,
    MissingColumnsError,
    RowLimitExceededError,
    UnsupportedFormatError,
)
from kimai_import.models import Timesheet
from kimai_import.schemas.options import ImportOptions
from kimai_import.services.importer import ImporterService

HEADER = b"User,Email,Project,Customer,Activity,Begin,End\n"
ROW = b"bob,bob@example.com,Website,Acme,Dev,2024-01-15 09:00,2024-01-15 10:00\n"


@pytest.fixture
def service(db, settings):
    return ImporterService(db, settings=settings)


class TestBatchErrors:
    def test_wrong_delimiter(self, service):
        with pytest.raises(DelimiterMismatchError):
            service.import_file(HEADER + ROW, options=ImportOptions(delimiter=";"))

    def test_row_limit(self, db):
        service = ImporterService(db, settings=Settings(_env_file=None, max_rows=2))

        with pytest.raises(RowLimitExceededError) as exc:
            service.import_file(HEADER + ROW * 3, options=ImportOptions(delimiter=",", dry_run=False))

        assert str(exc.value) == "Maximum of 2 rows allowed per import"
        assert db.query(Timesheet).count() == 0

    def test_row_limit_is_inclusive(self, db):
        service = ImporterService(db, settings=Settings(_env_file=None, max_rows=2))
        data = service.import_file(HEADER + ROW * 2, options=ImportOptions(delimiter=","))
        assert data.count_rows() == 2

    @pytest.mark.parametrize("content", [b"", HEADER])
    def test_empty_file(self, service, content):
        with pytest.raises(EmptyInputError) as exc:
            service.import_file(content, options=ImportOptions(delimiter=","))
        assert str(exc.value) == "Unsupported file given: empty"

    def test_missing_columns_for_explicit_importer(self, service):
        content = b"User,Project,Begin,End\nbob,Website,2024-01-15 09:00,2024-01-15 10:00\n"

        with pytest.raises(MissingColumnsError) as exc:
            service.import_file(content, options=ImportOptions(delimiter=",", importer="timesheet"))

        assert exc.value.columns == ["Activity", "Customer"]

    def test_unknown_format(self, service):
        with pytest.raises(AmbiguousFormatError):
            service.import_file(b"Foo,Bar\n1,2\n", options=ImportOptions(delimiter=","))

    def test_unsupported_mime_type(self, service):
        with pytest.raises(UnsupportedFormatError):
            service.import_file(HEADER + ROW, mime_type="application/pdf")

    def test_invalid_json(self, service):
        with pytest.raises(UnsupportedFormatError):
            service.import_file(b"[{", filename="export.json")


class TestMimeTypes:
    @pytest.mark.parametrize("mime_type, filename, expected", [
        ("text/csv; charset=utf-8", None, "text/csv"),
        (None, "export.json", "application/json"),
        (None, "export.csv", "text/csv"),
        (None, None, "text/csv"),
    ])
    def test_detect_mime_type(self, service, mime_type, filename, expected):
        assert service.detect_mime_type(mime_type, filename) == expected

    def test_delimiter_option_is_used(self, service):
        content = (HEADER + ROW).replace(b",", b"\t")
        data = service.import_file(content, mime_type="text/tab-separated-values", options=ImportOptions(delimiter="\t"))
        assert data.count_failed_rows() == 0
