from metadata_editor import cli, config
from metadata_editor.channel_maps import generate_all_channel_maps
from metadata_editor.export import export_channel_maps_csv
from metadata_editor.yaml_io import decode, encode

SAMPLE = "20230622_sample_metadata.yml"


class TestValidateCommand:
    def test_valid_file(self, golden_path, capsys):
        assert cli.main(["validate", str(golden_path(SAMPLE))]) == 0
        assert "OK" in capsys.readouterr().out

    def test_issues_are_listed(self, tmp_path, sample_document, capsys):
        sample_document["lab"] = ""
        sample_document["cameras"] = []
        path = tmp_path / "session.yml"
        path.write_text(encode(sample_document), encoding="utf-8")

        assert cli.main(["validate", str(path)]) == 1
        out = capsys.readouterr().out
        assert "3 issue(s)" in out
        assert "lab: lab cannot be empty or contain only whitespace" in out
        assert "tasks: Tasks have camera_ids" in out

    def test_parse_error(self, invalid_path, capsys):
        assert cli.main(["validate", str(invalid_path("unterminated_flow.yml"))]) == 1
        assert "not valid YAML" in capsys.readouterr().err

    def test_missing_file(self, tmp_path, capsys):
        assert cli.main(["validate", str(tmp_path / "nope.yml")]) == 1
        assert "cannot read" in capsys.readouterr().err


class TestFormatCommand:
    def test_writes_canonical_yaml(self, tmp_path, golden_path, golden):
        source = tmp_path / "messy.yml"
        source.write_text("lab:   Loren Frank Lab\nkeywords: [a, b]\nsession_id: '7'\n", encoding="utf-8")
        out = tmp_path / "out" / "clean.yml"

        assert cli.main(["format", str(source), "-o", str(out)]) == 0
        assert out.read_text(encoding="utf-8") == "lab: Loren Frank Lab\nkeywords:\n- a\n- b\nsession_id: '7'\n"

        assert cli.main(["format", str(golden_path("complete.yml")), "-o", str(out)]) == 0
        assert out.read_text(encoding="utf-8") == golden("complete.yml")

    def test_default_output_directory(self, tmp_path, golden_path, golden, monkeypatch):
        monkeypatch.setattr(config, "OUTPUT_DIR", tmp_path)
        assert cli.main(["format", str(golden_path("minimal.yml"))]) == 0
        assert (tmp_path / "minimal.yml").read_text(encoding="utf-8") == golden("minimal.yml")

    def test_stdout(self, golden_path, golden, capsys):
        assert cli.main(["format", "--stdout", str(golden_path("minimal.yml"))]) == 0
        assert capsys.readouterr().out == golden("minimal.yml")


class TestChannelMapsCommand:
    def test_regenerates_maps(self, golden_path, sample_document, capsys):
        assert cli.main(["channel-maps", str(golden_path(SAMPLE))]) == 0
        document = decode(capsys.readouterr().out)
        expected = generate_all_channel_maps(sample_document["electrode_groups"])
        assert document["ntrode_electrode_group_channel_map"] == expected
        assert document["ntrode_electrode_group_channel_map"][1]["bad_channels"] == []

    def test_csv(self, golden_path, capsys):
        assert cli.main(["channel-maps", "--csv", str(golden_path(SAMPLE))]) == 0
        lines = capsys.readouterr().out.splitlines()
        assert lines[0].startswith("electrode_group_id,device_type,location,ntrode_id")
        assert len(lines) == 3


    def test_from_csv_replaces_maps(self, tmp_path, golden_path, sample_document, capsys):
        maps = sample_document["ntrode_electrode_group_channel_map"]
        maps[1]["map"][3] = None
        source = tmp_path / "maps.csv"
        source.write_text(export_channel_maps_csv(maps, sample_document["electrode_groups"]), encoding="utf-8")

        assert cli.main(["channel-maps", str(golden_path(SAMPLE)), "--from-csv", str(source)]) == 0
        document = decode(capsys.readouterr().out)
        assert document["ntrode_electrode_group_channel_map"] == maps
        assert document["session_id"] == "12345"

    def test_from_csv_with_bad_rows(self, tmp_path, golden_path, capsys):
        source = tmp_path / "maps.csv"
        source.write_text("electrode_group_id,ntrode_id,electrode_id,bad_channels,channel_0\n0,x,0,,0\n", encoding="utf-8")

        assert cli.main(["channel-maps", str(golden_path(SAMPLE)), "--from-csv", str(source)]) == 1
        captured = capsys.readouterr()
        assert "ntrode_id at row 2" in captured.err
        assert captured.out == ""

    def test_from_csv_missing_file(self, tmp_path, golden_path, capsys):
        missing = tmp_path / "nope.csv"
        assert cli.main(["channel-maps", str(golden_path(SAMPLE)), "--from-csv", str(missing)]) == 1
        assert "cannot read" in capsys.readouterr().err

def test_device_types(capsys):
    assert cli.main(["device-types"]) == 0
    out = capsys.readouterr().out
    assert "tetrode_12.5" in out
    assert "NET-EBL-128ch-single-shank" in out


def test_no_command(capsys):
    assert cli.main([]) == 1
