from __future__ import annotations

import json
import socket

import dpkt

from queuestat import cli
from queuestat.cli import main


def _frame(src: str, payload: bytes) -> bytes:
    tcp = dpkt.tcp.TCP(sport=40001, dport=22133, seq=1, flags=dpkt.tcp.TH_ACK | dpkt.tcp.TH_PUSH)
    tcp.data = payload
    ip = dpkt.ip.IP(
        src=socket.inet_aton(src),
        dst=socket.inet_aton("192.0.2.1"),
        p=dpkt.ip.IP_PROTO_TCP,
        ttl=64,
    )
    ip.data = tcp
    ethernet = dpkt.ethernet.Ethernet(
        src=b"\xaa\xbb\xcc\xdd\xee\xff",
        dst=b"\x11\x22\x33\x44\x55\x66",
        type=dpkt.ethernet.ETH_TYPE_IP,
        data=ip,
    )
    return bytes(ethernet)


def _build_queue_pcap(path) -> None:
    with path.open("wb") as fh:
        writer = dpkt.pcap.Writer(fh)
        writer.writepkt(_frame("192.0.2.10", b"set jobs 0 0 5\r\nhello\r\n"), ts=1.0)
        writer.writepkt(_frame("192.0.2.11", b"get jobs/t=500\r\n"), ts=1.5)
        writer.writepkt(_frame("192.0.2.10", b"set mail 0 0 7\r\ninvite!\r\n"), ts=2.0)
        writer.writepkt(_frame("192.0.2.12", b"STATS\r\n"), ts=2.5)


def test_reprocess_capture_file(tmp_path, capsys, monkeypatch):
    monkeypatch.setattr("queuestat.config.DEFAULT_CONFIG_PATH", tmp_path / "absent.json")
    pcap_path = tmp_path / "cache01.pcap"
    _build_queue_pcap(pcap_path)

    exit_code = main(["--read", str(pcap_path), "--sizes", "--percentiles", "0,50,100", "-q"])

    assert exit_code == 0
    out = capsys.readouterr().out
    lines = out.splitlines()
    assert lines[0] == f"=== {pcap_path} ==="
    assert lines[1] == "packets: 4 seen, 4 with data, 0 filtered, 4 matched"
    assert "      2       1       0       0       0       1 all" in lines
    assert "      1       1       0       0       0       0 jobs" in lines
    assert "      1       5       5       5 jobs*" in lines
    assert "      1       7       7       7 mail*" in lines


def test_filter_and_table_toggles(tmp_path, capsys, monkeypatch):
    monkeypatch.setattr("queuestat.config.DEFAULT_CONFIG_PATH", tmp_path / "absent.json")
    pcap_path = tmp_path / "cache01.pcap"
    _build_queue_pcap(pcap_path)

    exit_code = main(["--read", str(pcap_path), "--filter", "jobs", "--no-hosts", "--no-queues", "-q"])

    assert exit_code == 0
    out = capsys.readouterr().out
    assert "packets: 4 seen, 4 with data, 2 filtered, 2 matched" in out
    assert "      1       0       0       0       0       1 filtered" in out
    assert "source host" not in out
    assert "jobs" not in out.split("packets:", 1)[1]


def test_no_targets(tmp_path, monkeypatch):
    monkeypatch.setattr("queuestat.config.DEFAULT_CONFIG_PATH", tmp_path / "absent.json")
    assert main(["-q"]) == 7


def test_invalid_filter(tmp_path, monkeypatch):
    monkeypatch.setattr("queuestat.config.DEFAULT_CONFIG_PATH", tmp_path / "absent.json")
    pcap_path = tmp_path / "cache01.pcap"
    _build_queue_pcap(pcap_path)
    assert main(["--read", str(pcap_path), "--filter", "[", "-q"]) == 9


def test_failed_target_does_not_stop_others(tmp_path, capsys, monkeypatch):
    monkeypatch.setattr("queuestat.config.DEFAULT_CONFIG_PATH", tmp_path / "absent.json")
    good = tmp_path / "good.pcap"
    _build_queue_pcap(good)
    bad = tmp_path / "bad.pcap"
    bad.write_text("garbage")

    exit_code = main(["--read", str(bad), "--read", str(tmp_path / "missing.pcap"), "--read", str(good), "-q"])

    assert exit_code == 8
    out = capsys.readouterr().out
    assert out.startswith(f"=== {good} ===")


def test_config_supplies_defaults(tmp_path, capsys):
    config = tmp_path / "queuestat.json"
    config.write_text(json.dumps({"no_summary": True, "no_hosts": True, "filter": "mail"}))
    pcap_path = tmp_path / "cache01.pcap"
    _build_queue_pcap(pcap_path)

    exit_code = main(["--config", str(config), "--read", str(pcap_path), "-q"])

    assert exit_code == 0
    out = capsys.readouterr().out
    assert "1 matched" in out
    assert " all" not in out
    assert out.rstrip().endswith("mail")


def test_dry_run_targets(tmp_path, capsys, monkeypatch):
    monkeypatch.setattr("queuestat.config.DEFAULT_CONFIG_PATH", tmp_path / "absent.json")
    monkeypatch.setattr("queuestat.capture.shutil.which", lambda name: f"/usr/bin/{name}")
    calls = []
    monkeypatch.setattr("queuestat.capture.subprocess.run", lambda *args, **kwargs: calls.append(args))

    exit_code = main(["--remote", "--dry-run", "--output-dir", str(tmp_path), "host-a", "host-b", "-q"])

    assert exit_code == 0
    assert calls == []
    captured = capsys.readouterr()
    assert captured.out == ""
    assert captured.err.count("dry-run: ssh host-a") == 2
    assert captured.err.count("dry-run: scp -q host-b:") == 1


def test_parse_percentiles():
    assert cli.parse_percentiles("50, 90,99.9") == [50.0, 90.0, 99.9]


def test_target_without_capture_source_fails_cleanly():
    result = cli.process_target(
        "host-a",
        capture_file=None,
        runner=None,
        content_filter=None,
        report_options=cli.ReportOptions(),
        resolver=None,
    )
    assert result.report is None
    assert result.exit_code == 1
