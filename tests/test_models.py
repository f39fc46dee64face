import signal

import pytest
from pydantic import ValidationError

from dockergen.core.models import (
    Address,
    DockerEnvironment,
    DockerImage,
    EventStatus,
    GeneratorConfig,
    LifecycleEvent,
    OutputConfig,
    RuntimeContainer,
    TLSSettings,
    normalize_signal,
)


@pytest.mark.parametrize(
    "value, expected",
    [
        (1, 1),
        ("1", 1),
        ("HUP", int(signal.SIGHUP)),
        ("sighup", int(signal.SIGHUP)),
        ("SIGUSR1", int(signal.SIGUSR1)),
    ],
)
def test_normalize_signal(value, expected):
    assert normalize_signal(value) == expected


@pytest.mark.parametrize("value", ["NOPE", 0, -9, True])
def test_normalize_signal_rejects_invalid(value):
    with pytest.raises(ValueError):
        normalize_signal(value)


def test_output_config_normalizes_notify_containers():
    config = OutputConfig(template="t.tmpl", notify_containers={"nginx": "HUP", "haproxy": 10})

    assert config.notify_containers == {"nginx": int(signal.SIGHUP), "haproxy": 10}


def test_output_config_rejects_negative_interval_and_unknown_keys():
    with pytest.raises(ValidationError):
        OutputConfig(template="t.tmpl", interval=-1)

    with pytest.raises(ValidationError):
        OutputConfig(template="t.tmpl", notfy_cmd="typo")


def test_output_config_is_immutable():
    config = OutputConfig(template="t.tmpl", dest="/tmp/out")

    with pytest.raises(ValidationError):
        config.dest = "/tmp/other"


def test_output_label_falls_back_to_stdout():
    assert OutputConfig(template="t.tmpl").label == "<stdout>"
    assert OutputConfig(template="t.tmpl", dest="/etc/hosts").label == "/etc/hosts"


def test_generator_config_partitions_outputs():
    config = GeneratorConfig(
        outputs=[
            OutputConfig(template="a", dest="a", watch=True),
            OutputConfig(template="b", dest="b", interval=30),
            OutputConfig(template="c", dest="c", watch=True, interval=5),
        ]
    )

    assert [o.dest for o in config.watched_outputs()] == ["a", "c"]
    assert [o.dest for o in config.interval_outputs()] == ["b", "c"]


def test_lifecycle_event_actionable_statuses():
    assert LifecycleEvent.from_raw("abc", "start").actionable is True
    assert LifecycleEvent.from_raw("abc", "stop").actionable is True
    assert LifecycleEvent.from_raw("abc", "die").actionable is True

    other = LifecycleEvent.from_raw("abc", "exec_create: sh")
    assert other.status == EventStatus.OTHER
    assert other.actionable is False


def test_lifecycle_event_short_id():
    event = LifecycleEvent.from_raw("0123456789abcdef0123", "start")
    assert event.short_id == "0123456789ab"


def test_docker_image_string():
    assert str(DockerImage(repository="nginx")) == "nginx"
    assert str(DockerImage(registry="quay.io", repository="coreos/etcd", tag="v3")) == "quay.io/coreos/etcd:v3"


def test_published_addresses():
    container = RuntimeContainer(
        id="abc",
        image=DockerImage(repository="nginx"),
        addresses=[Address(port="80", host_port="8080"), Address(port="443")],
    )

    assert [a.port for a in container.published_addresses()] == ["80"]


def test_tls_settings_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("DOCKER_CERT_PATH", str(tmp_path))
    monkeypatch.setenv("DOCKER_TLS_VERIFY", "1")

    tls = TLSSettings.from_environment(DockerEnvironment())

    assert tls.cert == str(tmp_path / "cert.pem")
    assert tls.key == str(tmp_path / "key.pem")
    assert tls.ca_cert == str(tmp_path / "ca.pem")
    assert tls.verify is True
