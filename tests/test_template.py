from build_notify.core.template import (
    PLACEHOLDER_RE,
    UNKNOWN_PATH,
    expand_body,
    resolve_artifact_path,
)


def _container(tmp_path, text):
    p = tmp_path / "output.txt"
    p.write_text(text, encoding="utf-8")
    return p


def test_expand_windows_path_from_container(tmp_path):
    p = _container(tmp_path, "C:\\out\\app.zip;extra\nsecond line\n")
    got = expand_body("Artifact: {{ ZIP_FILE_OUTPUT }}", str(p))
    assert got == "Artifact: C:\\out\\app.zip"


def test_expand_missing_container():
    assert expand_body("Artifact: {{ ZIP_FILE_OUTPUT }}", "/no/such/file.txt") == (
        "Artifact: " + UNKNOWN_PATH
    )
    assert expand_body("{{ZIP_FILE_OUTPUT}}", "") == UNKNOWN_PATH
    assert expand_body("{{ZIP_FILE_OUTPUT}}", None) == UNKNOWN_PATH


def test_expand_directory_is_not_a_container(tmp_path):
    assert resolve_artifact_path(tmp_path) == UNKNOWN_PATH


def test_expand_replaces_every_occurrence(tmp_path):
    p = _container(tmp_path, "  /builds/42/app.zip  ;x")
    body = "{{ZIP_FILE_OUTPUT}} and {{  ZIP_FILE_OUTPUT }} and {{\tZIP_FILE_OUTPUT\n}}"
    assert expand_body(body, p) == "/builds/42/app.zip and /builds/42/app.zip and /builds/42/app.zip"


def test_placeholder_name_is_case_sensitive(tmp_path):
    p = _container(tmp_path, "/a.zip")
    body = "{{ zip_file_output }} {{ ZIP_FILE }}"
    assert expand_body(body, p) == body
    assert PLACEHOLDER_RE.search(body) is None


def test_expand_is_idempotent(tmp_path):
    p = _container(tmp_path, "/a.zip")
    once = expand_body("Artifact: {{ ZIP_FILE_OUTPUT }}", p)
    assert expand_body(once, p) == once
    assert expand_body(once, "/no/such/file") == once


def test_resolve_artifact_path_first_field_without_semicolon(tmp_path):
    p = _container(tmp_path, "/out/app.zip\n")
    assert resolve_artifact_path(p) == "/out/app.zip"


def test_resolve_artifact_path_empty_file(tmp_path):
    p = _container(tmp_path, "")
    assert resolve_artifact_path(p) == ""


def test_resolve_artifact_path_strips_bom(tmp_path):
    p = tmp_path / "bom.txt"
    p.write_bytes("\ufeffD:\\drop\\app.zip;1".encode("utf-8"))
    assert resolve_artifact_path(p) == "D:\\drop\\app.zip"
