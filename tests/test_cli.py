from __future__ import annotations

import io
import threading
import time
from pathlib import Path

from logreader import cli
from logreader.config.runtime import LogReaderConfig, RecordingConfig

from conftest import FakeSessionFactory


def _parse(*argv: str):
    return cli._build_arg_parser().parse_args(list(argv))


def test_cli_flags_override_file_and_env(monkeypatch, tmp_path: Path) -> None:
    config_file = tmp_path / "config.yaml"
    config_file.write_text("connection:\n  host: 10.0.0.1\n  port: 2022\n", encoding="utf-8")
    monkeypatch.setenv("LOGREADER_HOST", "10.0.0.2")
    monkeypatch.setenv("LOGREADER_USER", "ops")

    cfg = cli.build_config(
        _parse("--config", str(config_file), "--host", "10.0.0.3", "--record", str(tmp_path / "rec"))
    )

    assert cfg.connection.host == "10.0.0.3"
    assert cfg.connection.port == 2022
    assert cfg.connection.username == "ops"
    assert cfg.recording.directory == tmp_path / "rec"


def test_record_flag_without_directory_keeps_default(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.delenv("LOGREADER_HOST", raising=False)
    args = _parse("--config", str(tmp_path / "missing.yaml"), "--record")

    assert args.record is not None
    assert cli.build_config(args).recording == RecordingConfig()


def test_run_echoes_lines_until_stopped(fast_config, tmp_path: Path) -> None:
    factory = FakeSessionFactory("ok")
    stop = threading.Event()
    out = io.StringIO()
    cfg = LogReaderConfig(
        connection=fast_config,
        recording=RecordingConfig(directory=tmp_path / "logs"),
    )

    def drive() -> None:
        factory.opened.wait(2.0)
        factory.sessions[0].stdout.feed(b"hello from adapter\n")
        for _ in range(200):
            if "hello from adapter" in out.getvalue():
                break
            time.sleep(0.01)
        stop.set()

    threading.Thread(target=drive, daemon=True).start()
    code = cli.run(cfg, record=True, out=out, session_factory=factory, stop_event=stop)

    assert code == 0
    assert out.getvalue() == "hello from adapter\n"
    recorded = list((tmp_path / "logs").glob("*.log"))
    assert len(recorded) == 1
    assert "] hello from adapter" in recorded[0].read_text(encoding="utf-8")


def test_run_exits_nonzero_when_retries_run_out(fast_config, tmp_path: Path, capsys) -> None:
    cfg = LogReaderConfig(
        connection=fast_config,
        recording=RecordingConfig(directory=tmp_path / "logs"),
    )

    code = cli.run(cfg, echo=False, session_factory=FakeSessionFactory())

    assert code == 1
    assert "Failed after 3 attempts: network down" in capsys.readouterr().err


def test_main_reports_bad_config(tmp_path: Path, capsys) -> None:
    bad = tmp_path / "config.yaml"
    bad.write_text("connection:\n  port: 99999\n", encoding="utf-8")

    assert cli.main(["--config", str(bad)]) == 2
    assert "port out of range" in capsys.readouterr().err
