"""
Tests for SourceLoader: data URIs, files, HTTP and inline payloads.
"""

import base64
import json
from unittest.mock import MagicMock
from urllib.parse import quote

import pytest
import requests

from scenecast.exceptions import LoadError
from scenecast.sources import SourceLoader

DOC = {"audio": "bg.mp3", "scenes": [{"html": "<p>Hello</p>", "duration": 1}, {"speech": "four words right here"}]}


@pytest.fixture
def loader():
    return SourceLoader(timeout=5, session=MagicMock())


def test_mapping_source(loader):
    doc = loader.load(DOC)
    assert len(doc.scenes) == 2
    assert doc.audio == "bg.mp3"


def test_base64_data_uri(loader):
    payload = base64.b64encode(json.dumps(DOC).encode()).decode()
    doc = loader.load(f"data:application/json;base64,{payload}")
    assert doc.scenes[0].html == "<p>Hello</p>"


def test_urlencoded_data_uri(loader):
    doc = loader.load("data:application/json," + quote(json.dumps(DOC)))
    assert doc.scenes[1].speech == "four words right here"


def test_malformed_data_uri(loader):
    with pytest.raises(LoadError):
        loader.load("data:application/json;base64")


@pytest.mark.parametrize("literal", ["Infinity", "-Infinity", "NaN"])
def test_non_finite_json_duration(loader, literal):
    payload = '{"scenes": [{"html": "x", "duration": ' + literal + "}]}"
    with pytest.raises(LoadError):
        loader.load("data:application/json," + quote(payload))


def test_file_path_and_file_url(loader, tmp_path):
    path = tmp_path / "scenes.json"
    path.write_text(json.dumps(DOC), encoding="utf-8")

    assert len(loader.load(str(path)).scenes) == 2
    assert len(loader.load(path).scenes) == 2
    assert len(loader.load(path.as_uri()).scenes) == 2


def test_missing_file(loader, tmp_path):
    with pytest.raises(LoadError) as exc:
        loader.load(str(tmp_path / "missing.json"))
    assert "missing.json" in exc.value.source


def test_invalid_json(loader, tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(LoadError, match="not valid JSON"):
        loader.load(str(path))


def test_http_source_uses_session_with_timeout(loader):
    response = MagicMock()
    response.text = json.dumps(DOC)
    loader.session.get.return_value = response

    doc = loader.load("https://example.com/scenes.json")

    loader.session.get.assert_called_once_with("https://example.com/scenes.json", timeout=5)
    response.raise_for_status.assert_called_once()
    assert len(doc.scenes) == 2


def test_http_error_becomes_load_error(loader):
    loader.session.get.side_effect = requests.ConnectionError("refused")
    with pytest.raises(LoadError, match="Could not fetch"):
        loader.load("http://localhost:1/scenes.json")


def test_http_status_error(loader):
    response = MagicMock()
    response.raise_for_status.side_effect = requests.HTTPError("404 Not Found")
    loader.session.get.return_value = response
    with pytest.raises(LoadError):
        loader.load("http://example.com/missing.json")
