from pathlib import Path

import pytest

from aquarius.ssl_factory import create_client_context, create_server_context


def test_client_missing_certificate(tmp_path):
    with pytest.raises(FileNotFoundError) as info:
        create_client_context(tmp_path)
    assert info.value.filename == str(tmp_path / "server.crt")


def test_server_missing_certificate(tmp_path):
    with pytest.raises(FileNotFoundError) as info:
        create_server_context(tmp_path)
    assert info.value.filename == str(tmp_path / "server.crt")


def test_server_missing_key(tmp_path):
    (tmp_path / "server.crt").write_text("not a certificate")
    with pytest.raises(FileNotFoundError) as info:
        create_server_context(tmp_path)
    assert info.value.filename == str(tmp_path / "server.key")


def test_server_missing_dh_params(tmp_path):
    (tmp_path / "server.crt").write_text("not a certificate")
    (tmp_path / "server.key").write_text("not a key")
    with pytest.raises(FileNotFoundError) as info:
        create_server_context(tmp_path)
    assert info.value.filename == str(tmp_path / "dh512.pem")


def test_default_directory_is_under_working_directory(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    with pytest.raises(FileNotFoundError) as info:
        create_client_context()
    assert Path(info.value.filename).resolve() == (tmp_path / "crt" / "server.crt").resolve()


def test_client_rejects_bad_certificate(tmp_path):
    (tmp_path / "server.crt").write_text("not a certificate")
    with pytest.raises(OSError):
        create_client_context(tmp_path)


def test_server_rejects_bad_files(tmp_path):
    for name in ("server.crt", "server.key", "dh512.pem"):
        (tmp_path / name).write_text("garbage")
    with pytest.raises(OSError):
        create_server_context(tmp_path)