from khe_api.data_client.application_client import null_fields, resume_path, store_resume


def test_resume_path_finds_stored_files(tmp_path):
    filename = store_resume(b"cv", "me.pdf", tmp_path)
    assert resume_path(filename, tmp_path) == (tmp_path / filename).resolve()
    assert resume_path("missing.pdf", tmp_path) is None


def test_resume_path_refuses_names_outside_the_uploads_folder(tmp_path):
    uploads = tmp_path / "uploads"
    uploads.mkdir()
    secret = tmp_path / "secret.pdf"
    secret.write_bytes(b"private")

    assert resume_path("../secret.pdf", uploads) is None
    assert resume_path(str(secret), uploads) is None

    (uploads / "link.pdf").symlink_to(secret)
    assert resume_path("link.pdf", uploads) is None


def test_null_fields_only_flags_not_null_columns():
    assert null_fields({"status": None, "gender": None, "name": None, "phone": "1"}) == ["name", "status"]
    assert null_fields({"resume": None, "link": None}) == []
