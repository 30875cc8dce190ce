import pytest

from pcapdj.cli import build_parser
from pcapdj.config import Settings, build_settings, load_config_file
from pcapdj.core import ConfigurationError


def _settings(argv):
    return build_settings(build_parser().parse_args(argv))


def test_defaults():
    s = _settings(["-b", "/tmp/fifo"])
    assert s == Settings(pipe="/tmp/fifo")
    assert s.redis_host == "127.0.0.1"
    assert s.redis_port == 6379
    assert s.queue == "PCAPDJ_IN_QUEUE"
    assert s.poll_interval == 0.1
    assert s.auth_timeout is None
    assert s.length_accounting == "wire"


def test_flags():
    s = _settings(["-b", "p", "-s", "redis.local", "-p", "7000", "-q", "Q", "-t", "30"])
    assert (s.redis_host, s.redis_port, s.queue, s.auth_timeout) == ("redis.local", 7000, "Q", 30.0)


def test_config_file_and_flag_precedence(tmp_path):
    cfg = tmp_path / "pcapdj.yaml"
    cfg.write_text(
        "pipe: /var/run/pcapdj.fifo\n"
        "redis_host: 10.0.0.5\n"
        "queue: FROM_FILE\n"
        "poll_interval: 0.5\n"
        "length_accounting: legacy\n",
        encoding="utf-8",
    )
    s = _settings(["-c", str(cfg), "-q", "FROM_FLAG"])
    assert s.pipe == "/var/run/pcapdj.fifo"
    assert s.redis_host == "10.0.0.5"
    assert s.queue == "FROM_FLAG"
    assert s.poll_interval == 0.5
    assert s.length_accounting == "legacy"


def test_empty_config_file(tmp_path):
    cfg = tmp_path / "empty.yaml"
    cfg.write_text("", encoding="utf-8")
    assert load_config_file(str(cfg)) == {}


@pytest.mark.parametrize(
    "content",
    [
        "nonsense_key: 1\n",
        "- a\n- b\n",
        "pipe: [unclosed\n",
        "pipe: p\nlength_accounting: double\n",
        "pipe: p\npoll_interval: 0\n",
        "pipe: p\nredis_port: 70000\n",
        "pipe: p\nauth_timeout: -1\n",
        "pipe: p\nredis_port: abc\n",
    ],
)
def test_invalid_config(tmp_path, content):
    cfg = tmp_path / "bad.yaml"
    cfg.write_text(content, encoding="utf-8")
    with pytest.raises(ConfigurationError):
        _settings(["-c", str(cfg)])


def test_missing_config_file(tmp_path):
    with pytest.raises(ConfigurationError):
        _settings(["-b", "p", "-c", str(tmp_path / "nope.yaml")])


def test_pipe_required():
    with pytest.raises(ConfigurationError):
        _settings([])
