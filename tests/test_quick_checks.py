import pytest

from metadata_editor import quick_checks
from metadata_editor.schema import GENDERS, build_field_descriptors, find_descriptor
from metadata_editor.yaml_io import MISSING


class TestRequired:
    @pytest.mark.parametrize("value", [0, False, "x", [1], {"a": 1}, 0.0])
    def test_present(self, value):
        assert quick_checks.required("field", value) is None

    @pytest.mark.parametrize("value", ["", "   ", "\t\n", None, MISSING, [], {}])
    def test_absent(self, value):
        hint = quick_checks.required("field", value)
        assert hint is not None
        assert hint.severity == "hint"
        assert hint.message == "This field is required"


class TestDateFormat:
    @pytest.mark.parametrize(
        "value",
        ["2023-06-22T14:30:00", "2023-06-22T14:30:00Z", "2023-06-22T14:30:00-07:00", "2023-06-22T14:30:00.123Z"],
    )
    def test_accepts_iso_datetimes(self, value):
        assert quick_checks.date_format("subject.date_of_birth", value) is None

    @pytest.mark.parametrize("value", ["06/22/2023", "2023-06-22", "2023-06-22 14:30:00", "June 22"])
    def test_rejects_other_shapes(self, value):
        hint = quick_checks.date_format("subject.date_of_birth", value)
        assert hint is not None
        assert hint.message.startswith("Date must be in ISO 8601 format")

    @pytest.mark.parametrize("value", ["2023-13-22T14:30:00", "2023-06-45T14:30:00"])
    def test_tolerates_calendar_invalid_values(self, value):
        assert quick_checks.date_format("subject.date_of_birth", value) is None

    def test_empty_is_not_checked(self):
        assert quick_checks.date_format("subject.date_of_birth", "") is None
        assert quick_checks.date_format("subject.date_of_birth", None) is None


class TestEnum:
    def test_allowed(self):
        assert quick_checks.enum("subject.sex", "F", GENDERS) is None

    def test_not_allowed(self):
        hint = quick_checks.enum("subject.sex", "X", GENDERS)
        assert hint.message == "Must be one of: M, F, U, O"

    def test_empty_is_not_checked(self):
        assert quick_checks.enum("subject.sex", "", GENDERS) is None


class TestNumberRange:
    def test_in_range(self):
        assert quick_checks.number_range("subject.weight", 100, minimum=0, maximum=1000) is None

    def test_below_minimum(self):
        assert quick_checks.number_range("subject.weight", -1, minimum=0).message == "Must be at least 0"

    def test_above_maximum_with_unit(self):
        assert quick_checks.number_range("subject.weight", "5", maximum=3, unit="g").message == "Must be at most 3 g"

    @pytest.mark.parametrize("value", ["abc", "1.2.3", None, "", True])
    def test_non_numbers_are_ignored(self, value):
        assert quick_checks.number_range("subject.weight", value, minimum=10) is None


class TestPattern:
    def test_match(self):
        assert quick_checks.pattern("lab", "Frank", r"\S") is None

    def test_whitespace_only_fails(self):
        assert quick_checks.pattern("lab", "   ", r"\S").message == "Value has invalid format"

    def test_custom_message(self):
        hint = quick_checks.pattern("session_id", "abc", r"^\d+$", "Digits only")
        assert hint.message == "Digits only"

    def test_empty_is_not_checked(self):
        assert quick_checks.pattern("lab", "", r"\S") is None


class TestCheckField:
    @pytest.fixture(scope="class")
    def root(self):
        return build_field_descriptors()

    def test_required_comes_first(self, root):
        hint = quick_checks.check_field(find_descriptor(root, "subject.date_of_birth"), "")
        assert hint.message == "This field is required"

    def test_date_field(self, root):
        hint = quick_checks.check_field(find_descriptor(root, "subject.date_of_birth"), "06/22/2023")
        assert hint.message.startswith("Date must be in ISO 8601 format")

    def test_enum_field(self, root):
        hint = quick_checks.check_field(find_descriptor(root, "subject.sex"), "X")
        assert hint.message == "Must be one of: M, F, U, O"

    def test_minimum_field(self, root):
        hint = quick_checks.check_field(find_descriptor(root, "cameras[0].meters_per_pixel"), -0.5)
        assert hint.message == "Must be at least 0"

    def test_valid_value(self, root):
        assert quick_checks.check_field(find_descriptor(root, "lab"), "Loren Frank Lab") is None
