"""Unit tests for the roku-ecp command-line tool."""

import json
from unittest.mock import patch

from roku_ecp import EcpAccessDeniedError, RokuApp, RokuDevice, __version__
from roku_ecp.__main__ import run

URL = "http://192.168.1.162:8060/"
DEVICE = RokuDevice(url=URL.rstrip("/"), name="Bedroom TV", is_tv=True, is_on=True)


def test_version(capsys):
    assert run(["version"]) == 0
    assert capsys.readouterr().out.strip() == __version__


def test_no_command(capsys):
    assert run([]) == 1
    assert "A command is required" in capsys.readouterr().err


def test_info(capsys):
    with patch("roku_ecp.__main__.get_roku_device", return_value=DEVICE) as get_device:
        assert run(["info", URL]) == 0

    assert get_device.call_args[0][0] == URL
    output = json.loads(capsys.readouterr().out)
    assert output["name"] == "Bedroom TV"
    assert output["is_tv"] is True


def test_apps(capsys):
    apps = [RokuApp(id="12", name="Netflix", type="appl", version="5.1")]
    with patch("roku_ecp.__main__.get_roku_device", return_value=DEVICE), \
         patch("roku_ecp.__main__.get_apps", return_value=apps):
        assert run(["apps", URL]) == 0

    assert json.loads(capsys.readouterr().out) == [{"id": "12", "name": "Netflix", "type": "appl", "version": "5.1"}]


def test_key_sends_each_key():
    with patch("roku_ecp.__main__.get_roku_device", return_value=DEVICE), \
         patch("roku_ecp.__main__.send_key") as send_key:
        assert run(["key", URL, "Home", "Select"]) == 0

    assert [c[0][1] for c in send_key.call_args_list] == ["Home", "Select"]


def test_launch_params():
    with patch("roku_ecp.__main__.get_roku_device", return_value=DEVICE), \
         patch("roku_ecp.__main__.launch_app") as launch_app:
        assert run(["launch", URL, "12", "--content-id", "80057281", "--media-type", "movie", "-p", "start=0"]) == 0

    params = launch_app.call_args[0][1]
    assert params.app_id == "12"
    assert params.content_id == "80057281"
    assert params.media_type.value == "movie"
    assert params.other_params == [("start", "0")]


def test_access_denied_reported(capsys):
    with patch("roku_ecp.__main__.get_roku_device", side_effect=EcpAccessDeniedError(url=URL)):
        assert run(["info", URL]) == 1

    assert "ACCESS_DENIED" in capsys.readouterr().err


def test_bad_name_value(capsys):
    with patch("roku_ecp.__main__.get_roku_device", return_value=DEVICE), \
         patch("roku_ecp.__main__.send_custom_input") as send_custom_input:
        assert run(["input", URL, "novalue"]) == 1

    send_custom_input.assert_not_called()
