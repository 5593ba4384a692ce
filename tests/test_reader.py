import pytest

from kimai_import.exceptions import DelimiterMismatchError, EmptyInputError, UnsupportedFormatError
from kimai_import.services.reader import read_csv, read_json
from kimai_import.utils.converters import is_utf8


class TestReadCsv:
    def test_reads_rows_in_source_order(self):
        parsed = read_csv(b" User ; Project \nalice;Website\nbob;Shop\n", ";")

        assert parsed.header == ["User", "Project"]
        assert [row["User"] for row in parsed.rows] == ["alice", "bob"]
        assert parsed.rows[1]["Project"] == "Shop"

    def test_short_rows_are_padded_and_blank_lines_skipped(self):
        parsed = read_csv(b"a,b,c\n1\n\n2,3,4\n", ",")

        assert parsed.rows == [{"a": "1", "b": "", "c": ""}, {"a": "2", "b": "3", "c": "4"}]

    def test_tab_delimiter(self):
        parsed = read_csv(b"a\tb\n1\t2\n", "\t")
        assert parsed.rows == [{"a": "1", "b": "2"}]

    def test_wrong_delimiter_is_detected(self):
        with pytest.raises(DelimiterMismatchError) as exc:
            read_csv(b"User,Project\nalice,Website\n", ";")
        assert str(exc.value) == "Unsupported file given: wrong delimiter?"

    def test_unsupported_delimiter(self):
        with pytest.raises(UnsupportedFormatError) as exc:
            read_csv(b"a|b\n1|2\n", "|")
        assert str(exc.value) == "Missing delimiter"

    @pytest.mark.parametrize("content", [b"", b"\n\n", b"User;Project\n", b"User;Project\n;\n"])
    def test_empty_input(self, content):
        with pytest.raises(EmptyInputError):
            read_csv(content, ";")

    def test_utf8_bom_is_ignored(self):
        parsed = read_csv("\ufeffUser;Project\nalice;Website\n".encode("utf-8"), ";")
        assert parsed.header == ["User", "Project"]

    def test_invalid_bytes_survive_reading(self):
        parsed = read_csv(b"User;Project\nalice;Caf\xe9\n", ";")

        value = parsed.rows[0]["Project"]
        assert value.startswith("Caf")
        assert not is_utf8(value)
        assert is_utf8(parsed.rows[0]["User"])


class TestReadJson:
    def test_reads_flat_objects(self):
        parsed = read_json(b'[{"User": "alice", "Duration": 3600}, {"User": "bob", "Duration": 60}]')

        assert parsed.header == ["User", "Duration"]
        assert parsed.rows[0] == {"User": "alice", "Duration": 3600}
        assert len(parsed.rows) == 2

    @pytest.mark.parametrize("content", [b"{not json", b'{"User": "alice"}', b'["alice"]', b'[{"User": {"name": "alice"}}]'])
    def test_unsupported_payloads(self, content):
        with pytest.raises(UnsupportedFormatError) as exc:
            read_json(content)
        assert str(exc.value) == "Unsupported file given"

    @pytest.mark.parametrize("content", [b"", b"  ", b"[]"])
    def test_empty_payloads(self, content):
        with pytest.raises(EmptyInputError):
            read_json(content)
