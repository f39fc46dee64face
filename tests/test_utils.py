import pytest

from dockergen.utils.text import (
    get_endpoint,
    is_blank,
    parse_host,
    path_exists,
    remove_blank_lines,
    split_docker_image,
    split_key_value_slice,
)


def test_default_endpoint(monkeypatch):
    monkeypatch.delenv("DOCKER_HOST", raising=False)
    assert get_endpoint("") == "unix:///var/run/docker.sock"


def test_docker_host_endpoint(monkeypatch):
    monkeypatch.setenv("DOCKER_HOST", "tcp://127.0.0.1:4243")
    assert get_endpoint("") == "tcp://127.0.0.1:4243"


def test_flag_endpoint_wins_over_docker_host(monkeypatch):
    monkeypatch.setenv("DOCKER_HOST", "tcp://127.0.0.1:4243")
    assert get_endpoint("tcp://127.0.0.1:5555") == "tcp://127.0.0.1:5555"


def test_unix_bad_format():
    with pytest.raises(ValueError):
        get_endpoint("unix:/var/run/docker.sock")


@pytest.mark.parametrize(
    "addr, expected",
    [
        ("unix:///var/run/docker.sock", ("unix", "/var/run/docker.sock")),
        ("", ("unix", "/var/run/docker.sock")),
        ("unix://", ("unix", "/var/run/docker.sock")),
        ("tcp://127.0.0.1:4243", ("tcp", "127.0.0.1:4243")),
        ("tcp://:4243", ("tcp", "127.0.0.1:4243")),
        ("10.0.0.1:2375", ("tcp", "10.0.0.1:2375")),
    ],
)
def test_parse_host(addr, expected):
    assert parse_host(addr) == expected


@pytest.mark.parametrize("addr", ["tcp://", "tcp://127.0.0.1", "udp://127.0.0.1:1", "tcp://host:0", "tcp://a:b:c"])
def test_parse_host_rejects_malformed(addr):
    with pytest.raises(ValueError):
        parse_host(addr)


@pytest.mark.parametrize(
    "items, expected",
    [
        (["K"], None),
        (["K="], ""),
        (["K=V3"], "V3"),
        (["K=V4=V5"], "V4=V5"),
    ],
)
def test_split_key_value_slice(items, expected):
    assert split_key_value_slice(items).get("K") == expected


@pytest.mark.parametrize(
    "image, expected",
    [
        ("nginx", ("", "nginx", "")),
        ("nginx:1.25", ("", "nginx", "1.25")),
        ("quay.io/coreos", ("quay.io", "coreos", "")),
        ("registry:5000/app:v2", ("registry:5000", "app", "v2")),
    ],
)
def test_split_docker_image(image, expected):
    assert split_docker_image(image) == expected


@pytest.mark.parametrize(
    "text, expected",
    [
        ("", True),
        (" ", True),
        ("   ", True),
        ("\t", True),
        ("\t\n\v\f\r\u0085 ", True),
        ("a", False),
        (" a ", False),
        ("a ", False),
        (" a", False),
        ("日本語", False),
    ],
)
def test_is_blank(text, expected):
    assert is_blank(text) is expected


@pytest.mark.parametrize(
    "text, expected",
    [
        ("", ""),
        ("\r\n\r\n", ""),
        ("line1\nline2", "line1\nline2"),
        ("line1\n\nline2", "line1\nline2"),
        ("\n\n\n\nline1\n\nline2", "line1\nline2"),
        ("\n\n\n\n\n  \n \n \n", ""),
        ("line1\r\nline2", "line1\r\nline2"),
        ("line1\r\n\r\nline2", "line1\r\nline2"),
        ("line1\n", "line1\n"),
        ("line1\r\n", "line1\r\n"),
    ],
)
def test_remove_blank_lines(text, expected):
    assert remove_blank_lines(text) == expected


def test_path_exists(tmp_path):
    existing = tmp_path / "cert.pem"
    existing.write_text("x")

    assert path_exists(str(existing)) is True
    assert path_exists(str(tmp_path / "missing.pem")) is False
    assert path_exists(None) is False
    assert path_exists("") is False
