from typing import Any, Dict, List

import streamlit as st

from metadata_editor.channel_maps import (
    CHANNEL_MAP_KEY,
    ELECTRODE_GROUPS_KEY,
    duplicate_electrode_group,
    remove_electrode_group,
    select_device_type,
)
from metadata_editor.channel_map_editor import UNASSIGNED, ChannelMapEditor
from metadata_editor.config import configure_logging
from metadata_editor.device_types import get_device_types, shank_count
from metadata_editor.errors import ChannelMapCsvError, EditFailed
from metadata_editor.export import build_channel_map_workbook, build_csv_bytes, import_channel_maps_csv
from metadata_editor.quick_checks import check_field
from metadata_editor.schema import (
    GENDERS,
    UNITS,
    build_field_descriptors,
    find_descriptor,
    get_field_category,
    get_field_descriptions,
    new_array_item,
)
from metadata_editor.session import EditSession
from metadata_editor.validation import summarize_issues, validate


st.set_page_config(page_title="NWB Metadata Editor", page_icon="📄", layout="wide")
configure_logging()


def _set_mode(new_mode: str):
    st.session_state["mode"] = new_mode


def _session() -> EditSession:
    if "edit_session" not in st.session_state:
        st.session_state["edit_session"] = EditSession()
        st.session_state["rev"] = 0
    return st.session_state["edit_session"]


def _bump_revision() -> None:
    # Widget keys carry the revision so a structural change redraws them from the document
    st.session_state["rev"] = st.session_state.get("rev", 0) + 1


def _key(*parts: Any) -> str:
    return "_".join(str(p) for p in (st.session_state.get("rev", 0),) + parts)


@st.cache_resource
def _descriptors():
    return build_field_descriptors()


def _apply(edit, *args, structural: bool = False) -> None:
    try:
        _session().apply(edit, *args)
    except EditFailed as e:
        st.error(f"Edit failed and was undone: {e}")
        _bump_revision()
        return
    if structural:
        _bump_revision()


# ------------------------------
# Edits (run by EditSession on a working copy)
# ------------------------------

def _set_field(document: Dict[str, Any], path: List[Any], value: Any) -> None:
    target = document
    for part in path[:-1]:
        target = target[part]
    target[path[-1]] = value


def _add_electrode_group(document: Dict[str, Any]) -> None:
    groups = document.setdefault(ELECTRODE_GROUPS_KEY, [])
    groups.append(new_array_item(ELECTRODE_GROUPS_KEY, groups))


def _assign_channel(document: Dict[str, Any], group_id: Any, shank: int, channel: int, value: Any) -> None:
    ChannelMapEditor(document, group_id).shank(shank).assign(channel, value)


def _toggle_bad_channel(document: Dict[str, Any], group_id: Any, shank: int, channel: int) -> None:
    ChannelMapEditor(document, group_id).shank(shank).toggle_bad_channel(channel)


def _replace_channel_maps(document: Dict[str, Any], maps: List[Dict[str, Any]]) -> None:
    document[CHANNEL_MAP_KEY] = maps


# ------------------------------
# Widgets
# ------------------------------

def _hint(path: str, value: Any) -> None:
    descriptor = find_descriptor(_descriptors(), path)
    if descriptor is None:
        return
    hint = check_field(descriptor, value, path)
    if hint:
        st.caption(f":orange[{hint.message}]")


def _text_field(label: str, path: List[Any], help_key: str = "") -> None:
    document = _session().document
    current = document
    for part in path:
        if isinstance(current, dict):
            current = current.get(part, "")
        elif isinstance(current, list) and isinstance(part, int) and part < len(current):
            current = current[part]
        else:
            current = ""
    dotted = ".".join(str(p) for p in path)
    value = st.text_input(
        label,
        value="" if current is None else str(current),
        key=_key("text", dotted),
        help=get_field_descriptions().get(help_key or dotted),
    )
    if value != ("" if current is None else str(current)):
        _apply(_set_field, path, value)
    _hint(dotted, value)


def _list_field(label: str, key: str) -> None:
    current = _session().document.get(key) or []
    raw = st.text_input(f"{label} (comma separated)", value=", ".join(current), key=_key("list", key))
    values = [v.strip() for v in raw.split(",") if v.strip()]
    if values != current:
        _apply(_set_field, [key], values)
    _hint(key, values)


def _session_page() -> None:
    st.header("Session & subject")
    st.caption(f"Section: {get_field_category('session_id')}")
    col1, col2 = st.columns(2)
    with col1:
        _list_field("Experimenter name", "experimenter_name")
        _text_field("Lab", ["lab"])
        _text_field("Institution", ["institution"])
        _text_field("Session id", ["session_id"])
        _list_field("Keywords", "keywords")
    with col2:
        _text_field("Experiment description", ["experiment_description"])
        _text_field("Session description", ["session_description"])
        _text_field("Default header file path", ["default_header_file_path"])

    st.subheader("Subject")
    subject = _session().document.get("subject") or {}
    col1, col2 = st.columns(2)
    with col1:
        _text_field("Subject id", ["subject", "subject_id"])
        _text_field("Species", ["subject", "species"])
        _text_field("Genotype", ["subject", "genotype"])
        _text_field("Description", ["subject", "description"])
    with col2:
        sex = subject.get("sex", "U")
        new_sex = st.selectbox(
            "Sex", GENDERS, index=GENDERS.index(sex) if sex in GENDERS else 2, key=_key("subject_sex")
        )
        if new_sex != sex:
            _apply(_set_field, ["subject", "sex"], new_sex)
        _text_field("Date of birth", ["subject", "date_of_birth"])
        weight = st.number_input(
            "Weight (g)", value=float(subject.get("weight") or 0), key=_key("subject_weight"), min_value=0.0
        )
        if weight != float(subject.get("weight") or 0):
            _apply(_set_field, ["subject", "weight"], weight)


def _electrode_groups_page() -> None:
    st.header("Electrode groups")
    device_types = get_device_types()
    groups = _session().document.get(ELECTRODE_GROUPS_KEY) or []

    if not groups:
        st.info("No electrode groups yet.")
    for index, group in enumerate(groups):
        label = f"Group {group.get('id')}: {group.get('location') or 'unnamed'} ({group.get('device_type') or 'no device'})"
        with st.expander(label, expanded=False):
            col1, col2 = st.columns(2)
            with col1:
                _text_field("Location", [ELECTRODE_GROUPS_KEY, index, "location"])
                _text_field("Description", [ELECTRODE_GROUPS_KEY, index, "description"])
                _text_field("Targeted location", [ELECTRODE_GROUPS_KEY, index, "targeted_location"])
            with col2:
                current = group.get("device_type") or ""
                options = [""] + device_types
                selected = st.selectbox(
                    "Device type",
                    options,
                    index=options.index(current) if current in options else 0,
                    key=_key("device_type", index),
                    help=get_field_descriptions().get("electrode_groups.device_type"),
                )
                if selected and selected != current:
                    _apply(select_device_type, index, selected, structural=True)
                    st.rerun()
                if selected:
                    st.caption(f"{shank_count(selected)} shank(s)")
                units = group.get("units") or UNITS[0]
                new_units = st.selectbox(
                    "Units", UNITS, index=UNITS.index(units) if units in UNITS else 0, key=_key("units", index)
                )
                if new_units != units:
                    _apply(_set_field, [ELECTRODE_GROUPS_KEY, index, "units"], new_units)

            col1, col2 = st.columns(2)
            if col1.button("Duplicate", key=_key("duplicate", index)):
                _apply(duplicate_electrode_group, index, structural=True)
                st.rerun()
            if col2.button("Remove", key=_key("remove", index)):
                _apply(remove_electrode_group, index, structural=True)
                st.rerun()

    if st.button("Add electrode group"):
        _apply(_add_electrode_group, structural=True)
        st.rerun()


def _channel_label(value: Any) -> str:
    return "unassigned" if value is UNASSIGNED else str(value)


def _channel_maps_page() -> None:
    st.header("Channel maps")
    st.caption(get_field_descriptions()["ntrode_electrode_group_channel_map.map"])
    document = _session().document
    groups = document.get(ELECTRODE_GROUPS_KEY) or []
    if not document.get(CHANNEL_MAP_KEY):
        st.info("Select a device type for an electrode group to generate its channel maps.")
        return

    for group in groups:
        group_id = group.get("id")
        editor = ChannelMapEditor(document, group_id)
        if not len(editor):
            continue
        st.subheader(f"Electrode group {group_id} ({group.get('device_type')})")
        for shank_index, shank in enumerate(editor.shanks):
            st.markdown(f"**Ntrode {shank.ntrode_id}**")
            duplicated = shank.duplicates()
            if duplicated:
                st.warning(f"Logical channel(s) {', '.join(map(str, duplicated))} used more than once")
            for channel in shank.malformed():
                st.warning(f"Ch {channel} holds {shank.raw(channel)!r}, which is not a channel number")
            columns = st.columns(min(len(shank.channels), 8) or 1)
            for position, channel in enumerate(shank.channels):
                with columns[position % len(columns)]:
                    options = shank.options(channel)
                    current = shank.value(channel)
                    chosen = st.selectbox(
                        f"Ch {channel}",
                        options,
                        index=options.index(current) if current in options else 0,
                        format_func=_channel_label,
                        key=_key("map", group_id, shank_index, channel),
                    )
                    if chosen != current:
                        _apply(_assign_channel, group_id, shank_index, channel, chosen)
                        st.rerun()
                    bad = st.checkbox("bad", value=shank.is_bad(channel), key=_key("bad", group_id, shank_index, channel))
                    if bad != shank.is_bad(channel):
                        _apply(_toggle_bad_channel, group_id, shank_index, channel)
                        st.rerun()


def _import_export_page() -> None:
    st.header("Import / export")
    uploaded = st.file_uploader("Import metadata YAML", type=["yml", "yaml"])
    if uploaded is not None and st.session_state.get("imported_file") != uploaded.file_id:
        st.session_state["imported_file"] = uploaded.file_id
        result = _session().load_yaml(uploaded.getvalue().decode("utf-8"))
        if not result.success:
            st.error(result.error)
        else:
            _bump_revision()
            if result.summary and result.summary.has_exclusions:
                st.warning(
                    "Imported with exclusions: "
                    + "; ".join(f"{e['field']} ({e['reason']})" for e in result.summary.excluded_fields)
                )
            else:
                st.success("Metadata imported.")

    uploaded_csv = st.file_uploader("Import channel maps CSV", type=["csv"])
    if uploaded_csv is not None and st.session_state.get("imported_csv") != uploaded_csv.file_id:
        st.session_state["imported_csv"] = uploaded_csv.file_id
        try:
            maps = import_channel_maps_csv(uploaded_csv.getvalue().decode("utf-8"))
        except ChannelMapCsvError as e:
            st.error(f"Channel maps not imported: {e}")
        else:
            _apply(_replace_channel_maps, maps, structural=True)
            st.success(f"Imported {len(maps)} channel map(s).")

    document = _session().document
    issues = validate(document)
    summary = summarize_issues(issues)
    st.subheader("Validation")
    if summary["ok"]:
        st.success("No validation issues.")
    else:
        st.error(f"{summary['count']} issue(s) must be fixed before export.")
        st.dataframe(
            [{"Field": i.path or "(document)", "Problem": i.message} for i in issues],
            use_container_width=True,
        )

    result = _session().export()
    col1, col2, col3 = st.columns(3)
    with col1:
        st.download_button(
            "Download YAML",
            data=(result.yaml or "").encode("utf-8"),
            file_name=result.filename or "metadata.yml",
            mime="application/x-yaml",
            disabled=not result.success,
        )
    maps = document.get(CHANNEL_MAP_KEY) or []
    groups = document.get(ELECTRODE_GROUPS_KEY) or []
    with col2:
        st.download_button(
            "Channel maps (.csv)",
            data=build_csv_bytes(maps, groups),
            file_name="channel_maps.csv",
            mime="text/csv",
            disabled=not maps,
        )
    with col3:
        try:
            xlsx = build_channel_map_workbook(maps, groups)
            st.download_button(
                "Channel maps (.xlsx)",
                data=xlsx,
                file_name="channel_maps.xlsx",
                mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
                disabled=not maps,
            )
        except Exception as e:
            st.warning(f"Could not build .xlsx: {e}")


def main() -> None:
    st.title("NWB Metadata Editor")
    _session()

    with st.sidebar:
        st.header("Sections")
        st.button("Import / export", width="stretch", on_click=_set_mode, args=("io",))
        st.button("Session & subject", width="stretch", on_click=_set_mode, args=("session",))
        st.button("Electrode groups", width="stretch", on_click=_set_mode, args=("groups",))
        st.button("Channel maps", width="stretch", on_click=_set_mode, args=("maps",))
        st.divider()
        if st.button("New form", type="secondary", width="stretch"):
            _session().reset()
            _bump_revision()

    mode = st.session_state.get("mode", "io")
    if mode == "session":
        _session_page()
    elif mode == "groups":
        _electrode_groups_page()
    elif mode == "maps":
        _channel_maps_page()
    else:
        _import_export_page()


if __name__ == "__main__":
    main()
