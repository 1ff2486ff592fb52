"""Tests for the ERP directory lookup (mocked)."""

from unittest.mock import MagicMock

import pytest
import requests

from gatepass.identity.config import IdentityConfig
from gatepass.identity.directory import DirectoryClient


def _config(**kwargs) -> IdentityConfig:
    defaults = {
        "jwt_secret": "x" * 40,
        "directory_base_url": "https://erp.example.com/ERPAPIs/api/ERPData/",
        "directory_username": "dpuser",
        "directory_password": "secret",
        "directory_timeout_seconds": 7,
    }
    defaults.update(kwargs)
    return IdentityConfig(**defaults)


def _client(status_code=200, body=None, exc=None):
    session = MagicMock()
    if exc is not None:
        session.post.side_effect = exc
    else:
        session.post.return_value.status_code = status_code
        session.post.return_value.json.return_value = body
    return DirectoryClient(_config(), session=session), session


def test_requires_base_url():
    with pytest.raises(ValueError):
        DirectoryClient(_config(directory_base_url=None))


def test_posts_service_no_with_credentials():
    client, session = _client(body=[{"employeeNo": "EX001"}])
    assert client.employee_exists("EX001") is True

    args, kwargs = session.post.call_args
    assert args[0] == "https://erp.example.com/ERPAPIs/api/ERPData/GetAllEmployeeDetailsForServiceNo"
    assert kwargs["json"] == {"employeeNo": "EX001"}
    assert kwargs["headers"]["UserName"] == "dpuser"
    assert kwargs["headers"]["Password"] == "secret"
    assert kwargs["timeout"] == 7


@pytest.mark.parametrize(
    "body, expected",
    [
        ([], False),
        ({"data": []}, False),
        ({"data": [{"employeeNo": "EX001"}]}, True),
        ({"employeeNo": "EX001"}, True),
        ({}, False),
        ("nobody", False),
    ],
)
def test_response_shapes(body, expected):
    client, _ = _client(body=body)
    assert client.employee_exists("EX001") is expected


def test_not_found_is_false():
    client, _ = _client(status_code=404)
    assert client.employee_exists("EX404") is False


def test_server_error_is_unknown():
    client, _ = _client(status_code=502)
    assert client.employee_exists("EX001") is None


def test_network_error_is_unknown():
    client, _ = _client(exc=requests.ConnectionError("down"))
    assert client.employee_exists("EX001") is None


def test_non_json_body_is_unknown():
    client, session = _client()
    session.post.return_value.json.side_effect = ValueError("not json")
    assert client.employee_exists("EX001") is None


def test_blank_service_no_is_false_without_call():
    client, session = _client(body=[{"employeeNo": "x"}])
    assert client.employee_exists("") is False
    session.post.assert_not_called()
