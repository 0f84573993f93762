"""Local file loading and deployment parameter shaping.

Resource Manager expects parameters as ``{name: {"value": value}}``. Nothing
here checks the values against the template; the service rejects mismatches.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from .exceptions import LocalFileError

logger = logging.getLogger(__name__)

DEFAULT_SSH_KEY_PATH = Path(".ssh") / "id_rsa.pub"
SSH_KEY_PARAMETER = "sshKeyData"

ParameterValues = Union[Mapping[str, Any], str, Path]


def parse_json_from_file(file_path: Union[str, Path]) -> Dict[str, Any]:
    """Read a JSON object from ``file_path``.

    Raises:
        LocalFileError: If the file is unreadable, is not valid JSON, or does
            not hold a JSON object at the top level
    """
    path = Path(file_path)
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise LocalFileError(
            f"Cannot read JSON file {path}: {e.strerror or e}", path=str(path), cause=e
        ) from e
    except UnicodeDecodeError as e:
        raise LocalFileError(
            f"JSON file {path} is not valid UTF-8: {e.reason}", path=str(path), cause=e
        ) from e
    except json.JSONDecodeError as e:
        raise LocalFileError(
            f"Malformed JSON in {path}: {e}", path=str(path), cause=e
        ) from e

    if not isinstance(data, dict):
        raise LocalFileError(
            f"Expected a JSON object in {path}, got {type(data).__name__}",
            path=str(path),
        )
    return data


def get_ssh_key(ssh_key_path: Optional[Union[str, Path]] = None) -> str:
    """Return the public key file contents exactly as stored.

    Defaults to ``~/.ssh/id_rsa.pub``. Line endings are not translated and
    the trailing newline is kept.
    """
    if ssh_key_path:
        path = Path(ssh_key_path).expanduser()
    else:
        path = Path.home() / DEFAULT_SSH_KEY_PATH

    try:
        with open(path, encoding="utf-8", newline="") as f:
            return f.read()
    except OSError as e:
        raise LocalFileError(
            f"Cannot read SSH public key {path}: {e.strerror or e}",
            path=str(path),
            cause=e,
        ) from e
    except UnicodeDecodeError as e:
        raise LocalFileError(
            f"SSH public key {path} is not valid UTF-8: {e.reason}",
            path=str(path),
            cause=e,
        ) from e


def add_element_to_map(parameters: Dict[str, Any], key: str, value: Any) -> None:
    """Insert ``value`` under ``key`` in the shape deployments require."""
    parameters[key] = {"value": value}


def _is_parameters_document(data: Mapping[str, Any]) -> bool:
    return "$schema" in data and isinstance(data.get("parameters"), dict)


def build_parameters(
    source: ParameterValues,
    ssh_key_path: Optional[Union[str, Path]] = None,
    ssh_key_parameter: Optional[str] = SSH_KEY_PARAMETER,
) -> Dict[str, Dict[str, Any]]:
    """Build the deployment parameters mapping.

    Args:
        source: Either a mapping of plain values or a path to a JSON file.
            The file may be a flat ``name -> value`` object or a full ARM
            parameters document, whose entries are already wrapped.
        ssh_key_path: Public key to read, ``~/.ssh/id_rsa.pub`` by default
        ssh_key_parameter: Parameter that receives the key, or None to skip
            reading a key at all

    Returns:
        Mapping of ``{name: {"value": value}}``

    Raises:
        LocalFileError: If a file cannot be read or parsed
    """
    parameters: Dict[str, Dict[str, Any]] = {}

    if isinstance(source, (str, Path)):
        data = parse_json_from_file(source)
        if _is_parameters_document(data):
            logger.debug(f"Using parameters document {source}")
            parameters.update(data["parameters"])
        else:
            for key, value in data.items():
                add_element_to_map(parameters, key, value)
    else:
        for key, value in source.items():
            add_element_to_map(parameters, key, value)

    if ssh_key_parameter:
        add_element_to_map(parameters, ssh_key_parameter, get_ssh_key(ssh_key_path))

    return parameters
