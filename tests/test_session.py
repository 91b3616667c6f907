import pytest

from metadata_editor.channel_map_editor import ChannelMapEditor
from metadata_editor.channel_maps import CHANNEL_MAP_KEY, select_device_type
from metadata_editor.errors import ChannelAssignmentError, EditFailed
from metadata_editor.session import EditSession


def _assign(document, group_id, shank, channel, value):
    ChannelMapEditor(document, group_id).shank(shank).assign(channel, value)


class TestEditSession:
    def test_starts_from_defaults(self):
        session = EditSession()
        assert session.document["lab"] == "Loren Frank Lab"
        assert session.last_good == session.document

    def test_does_not_alias_the_given_document(self, sample_document):
        session = EditSession(sample_document)
        session.document["lab"] = "Other"
        assert sample_document["lab"] == "Loren Frank Lab"

    def test_successful_edit_is_committed(self, sample_document):
        session = EditSession(sample_document)
        session.apply(select_device_type, 1, "32c-2s8mm6cm-20um-40um-dl")
        assert len(session.document[CHANNEL_MAP_KEY]) == 3
        assert session.last_good == session.document

    def test_in_place_edit(self, sample_document):
        session = EditSession(sample_document)
        session.apply(_assign, 0, 0, 1, None)
        assert session.document[CHANNEL_MAP_KEY][0]["map"][1] is None

    def test_failed_edit_restores_last_good(self, sample_document):
        session = EditSession(sample_document)

        def half_done(document):
            document["lab"] = "changed"
            raise KeyError("boom")

        with pytest.raises(EditFailed) as excinfo:
            session.apply(half_done)
        assert isinstance(excinfo.value.__cause__, KeyError)
        assert session.document == sample_document

    def test_rejected_channel_assignment_rolls_back(self, sample_document):
        session = EditSession(sample_document)
        with pytest.raises(EditFailed) as excinfo:
            session.apply(_assign, 0, 0, 1, 2)
        assert isinstance(excinfo.value.__cause__, ChannelAssignmentError)
        assert session.document[CHANNEL_MAP_KEY][0]["map"] == {0: 0, 1: 1, 2: 2, 3: 3}

    def test_last_good_is_a_copy(self, sample_document):
        session = EditSession(sample_document)
        snapshot = session.last_good
        snapshot["lab"] = "changed"
        assert session.last_good["lab"] == "Loren Frank Lab"

    def test_failed_import_keeps_document(self, sample_document, invalid):
        session = EditSession(sample_document)
        result = session.load_yaml(invalid("bad_indentation.yml"))
        assert not result.success
        assert session.document == sample_document

    def test_import_with_list_group_id_does_not_crash(self):
        session = EditSession()
        result = session.load_yaml("electrode_groups:\n- id: [1]\n")
        assert result.success
        assert "electrode_groups" in [e["field"] for e in result.summary.excluded_fields]
        assert session.document["electrode_groups"] == []
        assert session.last_good == session.document

    def test_import_replaces_and_commits(self, sample_text):
        session = EditSession()
        result = session.load_yaml(sample_text)
        assert result.success
        assert session.document["session_id"] == "12345"
        assert session.last_good["session_id"] == "12345"

    def test_export(self, sample_text):
        session = EditSession()
        session.load_yaml(sample_text)
        assert session.export().yaml == sample_text

    def test_reset(self, sample_document):
        session = EditSession(sample_document)
        session.reset(defaults=False)
        assert session.document["lab"] == ""
        assert session.last_good["lab"] == ""
