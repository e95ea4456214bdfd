"""Tests for the s3sigv4 command line."""

import json
import logging

import httpx
import pytest
import yaml

from s3sigv4.cli import main, parse_args
from tests.vectors import (
    ACCESS_KEY,
    EXAMPLE_HOST,
    GET_OBJECT_SIGNATURE,
    PUT_OBJECT_BODY,
    PUT_OBJECT_PAYLOAD_HASH,
    SECRET_KEY,
)


@pytest.fixture(autouse=True)
def restore_root_logging():
    """Undo the handler swap configure_logging() does on the root logger."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def config_path(tmp_path):
    """A config file holding the AWS example credentials."""
    path = tmp_path / "s3sigv4.yaml"
    path.write_text(
        yaml.dump(
            {
                "signer": {"region": "us-east-1", "presign_expires": 900},
                "credentials": {"access_key": ACCESS_KEY, "secret_key": SECRET_KEY},
                "logging": {"level": "WARNING"},
            }
        )
    )
    return path


class TestParseArgs:
    """Tests for parse_args()."""

    def test_sign_defaults(self):
        """sign defaults to GET with no body and no extra headers."""
        args = parse_args(["sign", "http://localhost:9000/b"])
        assert args.command == "sign"
        assert args.method == "GET"
        assert args.body_file is None
        assert args.header == []

    def test_command_required(self):
        """A subcommand must be given."""
        with pytest.raises(SystemExit):
            parse_args([])


class TestMain:
    """Tests for main()."""

    def test_sign_prints_signed_request(self, config_path, capsys):
        """sign prints method, URL and headers including the signature."""
        main(
            [
                "--config",
                str(config_path),
                "--date",
                "20130524T000000Z",
                "sign",
                "--header",
                "Range: bytes=0-9",
                f"http://{EXAMPLE_HOST}/test.txt",
            ]
        )
        output = json.loads(capsys.readouterr().out)
        headers = {name.lower(): value for name, value in output["headers"].items()}
        assert output["method"] == "GET"
        assert output["url"] == f"http://{EXAMPLE_HOST}/test.txt"
        assert headers["authorization"].endswith(f"Signature={GET_OBJECT_SIGNATURE}")

    def test_sign_with_body_file(self, config_path, tmp_path, capsys):
        """--body-file is hashed into x-amz-content-sha256."""
        body = tmp_path / "body.txt"
        body.write_bytes(PUT_OBJECT_BODY)
        main(
            [
                "--config",
                str(config_path),
                "sign",
                "--method",
                "PUT",
                "--body-file",
                str(body),
                "http://localhost:9000/b/k",
            ]
        )
        output = json.loads(capsys.readouterr().out)
        headers = {name.lower(): value for name, value in output["headers"].items()}
        assert headers["x-amz-content-sha256"] == PUT_OBJECT_PAYLOAD_HASH

    def test_sign_repeated_header_joined(self, config_path, capsys):
        """A header given twice prints both values, comma-joined."""
        main(
            [
                "--config",
                str(config_path),
                "sign",
                "--header",
                "X-Amz-Meta-Tag: a",
                "--header",
                "X-Amz-Meta-Tag: b",
                "http://localhost:9000/b/k",
            ]
        )
        output = json.loads(capsys.readouterr().out)
        headers = {name.lower(): value for name, value in output["headers"].items()}
        assert headers["x-amz-meta-tag"] == "a,b"

    def test_presign_uses_config_expiry(self, config_path, capsys):
        """presign prints a URL valid for the configured time."""
        main(["--config", str(config_path), "presign", "http://localhost:9000/b/k"])
        url = httpx.URL(capsys.readouterr().out.strip())
        assert url.params["X-Amz-Expires"] == "900"
        assert url.params["X-Amz-Credential"].startswith(ACCESS_KEY + "/")

    def test_region_override(self, config_path, capsys):
        """--region overrides the configured region."""
        main(
            [
                "--config",
                str(config_path),
                "--region",
                "eu-west-1",
                "presign",
                "http://localhost:9000/b/k",
            ]
        )
        url = httpx.URL(capsys.readouterr().out.strip())
        assert "/eu-west-1/s3/" in url.params["X-Amz-Credential"]

    def test_missing_config_exits(self, tmp_path):
        """A missing config file exits with status 1."""
        with pytest.raises(SystemExit) as excinfo:
            main(["--config", str(tmp_path / "missing.yaml"), "sign", "http://localhost/b"])
        assert excinfo.value.code == 1

    def test_bad_header_exits(self, config_path):
        """A header without a colon exits with status 1."""
        with pytest.raises(SystemExit) as excinfo:
            main(["--config", str(config_path), "sign", "--header", "oops", "http://localhost/b"])
        assert excinfo.value.code == 1

    def test_bad_url_exits(self, config_path):
        """An unparsable URL exits with status 1."""
        with pytest.raises(SystemExit) as excinfo:
            main(["--config", str(config_path), "sign", "not-a-url"])
        assert excinfo.value.code == 1

    def test_missing_body_file_exits(self, config_path, tmp_path):
        """A body file that cannot be opened exits with status 1."""
        with pytest.raises(SystemExit) as excinfo:
            main(
                [
                    "--config",
                    str(config_path),
                    "sign",
                    "--body-file",
                    str(tmp_path / "absent.bin"),
                    "http://localhost/b",
                ]
            )
        assert excinfo.value.code == 1
