import socket
import threading

import pytest

from aquarius.echo import main
from aquarius.server import Server


def _closed_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as probe:
        probe.bind(("127.0.0.1", 0))
        return probe.getsockname()[1]


def test_client_without_server(capsys):
    assert main(["client", "--port", str(_closed_port())]) == 0
    assert capsys.readouterr().out == "Hello World!\n"


def test_client_with_server(capsys):
    server = Server(0, 2, "echo test")
    runner = threading.Thread(target=server.run)
    runner.start()
    try:
        port = server.wait_ready(5)
        assert main(["client", "--host", "127.0.0.1", "--port", str(port)]) == 0
    finally:
        server.stop()
        runner.join(10)
    assert "Hello World!" in capsys.readouterr().out
    assert not runner.is_alive()


def test_server_rejects_empty_pool():
    with pytest.raises(RuntimeError):
        main(["server", "--port", "0", "--pool", "0"])


def test_unknown_mode_exits_with_usage_error():
    with pytest.raises(SystemExit) as excinfo:
        main(["bogus"])
    assert excinfo.value.code == 2


def test_mode_is_required():
    with pytest.raises(SystemExit) as excinfo:
        main([])
    assert excinfo.value.code == 2