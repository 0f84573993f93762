"""Tests for local file loading and parameter shaping."""

import json
from pathlib import Path

import pytest

from arm_deploy.config import DEFAULT_PARAMETERS_FILE
from arm_deploy.exceptions import LocalFileError
from arm_deploy.parameters import (
    add_element_to_map,
    build_parameters,
    get_ssh_key,
    parse_json_from_file,
)

FIXTURES_DIR = Path(__file__).parent / "fixtures"


class TestParseJSONFromFile:
    """Tests for reading JSON templates."""

    def test_round_trip(self, template_file):
        """Test the result is deep-equal to the file's JSON content."""
        expected = json.loads(template_file.read_text(encoding="utf-8"))

        assert parse_json_from_file(template_file) == expected

    def test_accepts_string_path(self, template_file):
        assert parse_json_from_file(str(template_file))["contentVersion"] == "1.0.0.0"

    def test_missing_file(self, tmp_path):
        """Test a missing file raises LocalFileError with the path."""
        missing = tmp_path / "nope.json"

        with pytest.raises(LocalFileError) as exc_info:
            parse_json_from_file(missing)

        assert exc_info.value.path == str(missing)

    def test_malformed_json(self, tmp_path):
        """Test invalid JSON raises LocalFileError."""
        bad = tmp_path / "bad.json"
        bad.write_text("{invalid json")

        with pytest.raises(LocalFileError, match="Malformed JSON"):
            parse_json_from_file(bad)

    def test_invalid_utf8(self, tmp_path):
        """Test undecodable bytes raise LocalFileError, not UnicodeDecodeError."""
        bad = tmp_path / "latin1.json"
        bad.write_bytes(b'{"a": "\xff\xfe"}')

        with pytest.raises(LocalFileError, match="not valid UTF-8") as exc_info:
            parse_json_from_file(bad)

        assert exc_info.value.path == str(bad)
        assert isinstance(exc_info.value.cause, UnicodeDecodeError)

    def test_non_object_document(self, tmp_path):
        """Test a top-level array is rejected."""
        array_file = tmp_path / "array.json"
        array_file.write_text("[1, 2, 3]")

        with pytest.raises(LocalFileError, match="Expected a JSON object"):
            parse_json_from_file(array_file)


class TestGetSSHKey:
    """Tests for reading the public key."""

    def test_exact_contents_with_trailing_newline(self, ssh_key_file):
        """Test the key is returned verbatim, trailing newline included."""
        key = get_ssh_key(ssh_key_file)

        assert key == ssh_key_file.read_bytes().decode("utf-8")
        assert key.endswith("\n")
        assert key.count("\n") == 1

    def test_line_endings_are_not_translated(self, tmp_path):
        """Test that CRLF line endings survive the read."""
        key_file = tmp_path / "key.pub"
        key_file.write_bytes(b"ssh-rsa AAAA test@host\r\n")

        assert get_ssh_key(key_file) == "ssh-rsa AAAA test@host\r\n"

    def test_default_path_is_home_ssh(self, tmp_path, monkeypatch):
        """Test the default location is ~/.ssh/id_rsa.pub."""
        ssh_dir = tmp_path / ".ssh"
        ssh_dir.mkdir()
        (ssh_dir / "id_rsa.pub").write_text("ssh-rsa HOMEKEY user@home\n")
        monkeypatch.setattr(Path, "home", lambda: tmp_path)

        assert get_ssh_key() == "ssh-rsa HOMEKEY user@home\n"

    def test_missing_key_file(self, tmp_path):
        """Test a missing key raises LocalFileError."""
        with pytest.raises(LocalFileError, match="Cannot read SSH public key"):
            get_ssh_key(tmp_path / "absent.pub")

    def test_invalid_utf8_key(self, tmp_path):
        """Test a key file with undecodable bytes raises LocalFileError."""
        key_file = tmp_path / "key.pub"
        key_file.write_bytes(b"ssh-rsa \xff\xfe\n")

        with pytest.raises(LocalFileError, match="not valid UTF-8") as exc_info:
            get_ssh_key(key_file)

        assert exc_info.value.path == str(key_file)


class TestBuildParameters:
    """Tests for building the {key: {"value": value}} mapping."""

    def test_add_element_to_map(self):
        parameters = {}
        add_element_to_map(parameters, "name", "value")
        add_element_to_map(parameters, "nested", {"a": [1, 2], "b": {"c": True}})

        assert parameters == {
            "name": {"value": "value"},
            "nested": {"value": {"a": [1, 2], "b": {"c": True}}},
        }

    def test_static_map_values_are_wrapped(self, ssh_key_file):
        """Test every inserted key gets the exact wrapper shape."""
        values = {
            "dnsLabelPrefix": "sample-dns-prefix",
            "vmName": "azure-deployment-sample-vm",
            "tags": {"env": "dev", "owners": ["x"]},
            "count": 3,
        }

        parameters = build_parameters(values, ssh_key_path=ssh_key_file)

        assert set(parameters) == set(values) | {"sshKeyData"}
        for key, value in values.items():
            assert parameters[key] == {"value": value}
        assert parameters["sshKeyData"] == {"value": get_ssh_key(ssh_key_file)}
        for entry in parameters.values():
            assert list(entry) == ["value"]

    def test_values_that_look_wrapped_are_still_wrapped(self, ssh_key_file):
        """Test a static map value is never unwrapped."""
        parameters = build_parameters(
            {"already": {"value": 1}}, ssh_key_path=ssh_key_file
        )

        assert parameters["already"] == {"value": {"value": 1}}

    def test_flat_parameters_file(self, ssh_key_file):
        """Test a flat JSON file is wrapped entry by entry."""
        parameters = build_parameters(
            FIXTURES_DIR / "parameters_flat.json", ssh_key_path=ssh_key_file
        )

        assert parameters["dnsLabelPrefix"] == {"value": "flat-prefix"}
        assert parameters["tags"] == {"value": {"env": "dev"}}

    def test_parameters_document_file(self, ssh_key_file):
        """Test an ARM parameters document is used as it is."""
        parameters = build_parameters(
            FIXTURES_DIR / "parameters_document.json", ssh_key_path=ssh_key_file
        )

        assert parameters["dnsLabelPrefix"] == {"value": "doc-prefix"}
        assert parameters["vmName"] == {"value": "doc-vm"}
        # The key file replaces the placeholder in the document
        assert parameters["sshKeyData"] == {"value": get_ssh_key(ssh_key_file)}

    def test_bundled_sample_parameters(self, ssh_key_file):
        """Test the packaged sample parameters document is usable as a source."""
        parameters = build_parameters(DEFAULT_PARAMETERS_FILE, ssh_key_path=ssh_key_file)

        assert parameters["adminUsername"] == {"value": "azureSample"}
        assert parameters["sshKeyData"] == {"value": get_ssh_key(ssh_key_file)}

    def test_skip_ssh_key(self, tmp_path):
        """Test no key is read when no key parameter is requested."""
        parameters = build_parameters(
            {"a": "b"},
            ssh_key_path=tmp_path / "does-not-exist.pub",
            ssh_key_parameter=None,
        )

        assert parameters == {"a": {"value": "b"}}

    def test_missing_ssh_key_fails(self, tmp_path):
        """Test a missing key file fails the build."""
        with pytest.raises(LocalFileError):
            build_parameters({"a": "b"}, ssh_key_path=tmp_path / "absent.pub")

    def test_missing_parameters_file_fails(self, tmp_path, ssh_key_file):
        with pytest.raises(LocalFileError):
            build_parameters(tmp_path / "absent.json", ssh_key_path=ssh_key_file)
