import pytest

from metadata_editor.errors import YamlParseError
from metadata_editor.yaml_io import MISSING, decode, encode, format_filename

GOLDEN = ["minimal.yml", "complete.yml", "20230622_sample_metadata.yml"]


class TestGoldenRoundTrip:
    @pytest.mark.parametrize("name", GOLDEN)
    def test_encode_decode_is_byte_identical(self, golden, name):
        text = golden(name)
        outputs = []
        for _ in range(3):
            outputs.append(encode(decode(text)))
            text = outputs[-1]
        assert outputs == [golden(name)] * 3

    @pytest.mark.parametrize("name", GOLDEN)
    def test_output_is_block_style_with_unix_newlines(self, golden, name):
        text = encode(decode(golden(name)))
        assert "\r" not in text
        assert "\t" not in text
        assert text.endswith("\n")


class TestEncode:
    def test_empty_document(self):
        assert encode({}) == "{}\n"
        assert encode(None) == "{}\n"

    def test_missing_is_omitted_and_none_is_null(self):
        document = {"a": 1, "b": MISSING, "c": None, "d": {"e": MISSING, "f": None}}
        assert encode(document) == "a: 1\nc: null\nd:\n  f: null\n"

    def test_missing_list_items_are_dropped(self):
        assert encode({"keywords": ["a", MISSING, "b"]}) == "keywords:\n- a\n- b\n"

    def test_empty_containers(self):
        assert encode({"cameras": [], "units": {}}) == "cameras: []\nunits: {}\n"

    def test_key_order_is_preserved(self):
        assert encode({"zeta": 1, "alpha": 2}) == "zeta: 1\nalpha: 2\n"

    def test_numeric_and_date_strings_are_quoted(self):
        text = encode({"session_id": "12345", "date_of_birth": "2023-06-22T14:30:00Z", "empty": ""})
        assert text == "session_id: '12345'\ndate_of_birth: '2023-06-22T14:30:00Z'\nempty: ''\n"

    def test_unicode_kept(self):
        assert encode({"units": "μm"}) == "units: μm\n"

    def test_long_strings_are_not_folded(self):
        description = " ".join(["word"] * 60)
        assert encode({"description": description}) == f"description: {description}\n"

    def test_tuples_become_lists(self):
        assert encode({"ids": (1, 2)}) == "ids:\n- 1\n- 2\n"


class TestDecode:
    def test_dates_stay_strings(self):
        document = decode("date_of_birth: 2023-06-22T14:30:00\nday: 2023-06-22\n")
        assert document == {"date_of_birth": "2023-06-22T14:30:00", "day": "2023-06-22"}

    def test_quoted_numbers_stay_strings(self):
        assert decode("session_id: '12345'\n") == {"session_id": "12345"}

    def test_channel_map_keys_are_ints(self):
        document = decode("map:\n  0: 0\n  1: null\n")
        assert document == {"map": {0: 0, 1: None}}

    def test_empty_text(self):
        assert decode("") is None

    def test_unterminated_flow_collection(self, invalid):
        with pytest.raises(YamlParseError) as excinfo:
            decode(invalid("unterminated_flow.yml"))
        assert excinfo.value.line is not None
        assert excinfo.value.line >= 1

    def test_bad_indentation_reports_position(self, invalid):
        with pytest.raises(YamlParseError) as excinfo:
            decode(invalid("bad_indentation.yml"))
        assert excinfo.value.line == 3
        assert "line 3" in str(excinfo.value)

    def test_unsafe_tags_are_rejected(self):
        with pytest.raises(YamlParseError):
            decode("value: !!python/object/apply:os.system ['true']\n")


class TestFormatFilename:
    def test_subject_id_is_lowercased(self):
        document = {"EXPERIMENT_DATE_in_format_mmddYYYY": "06222023", "subject": {"subject_id": "Rat01"}}
        assert format_filename(document) == "06222023_rat01_metadata.yml"

    def test_placeholder_without_date(self):
        assert format_filename({"subject": {"subject_id": "rat01"}}) == (
            "{EXPERIMENT_DATE_in_format_mmddYYYY}_rat01_metadata.yml"
        )
