import pytest

from netwho.collectors.remote import (correlate, fetch_cmdlines, fetch_summaries,
                                      get_all_process_info, get_process_info_for_target)
from netwho.collectors.ss import parse_ss
from netwho.collectors.ssh import SshRunner, bounded_map
from netwho.config import CFG, CMDLINE_PID_CMD, CMDLINE_SNAPSHOT_CMD, SS_PROCESS_CMD
from netwho.errors import RemoteCommandError

from conftest import FakeRunner, SS_TANP


def test_fetch_summaries_propagates_transport_errors():
    with pytest.raises(RemoteCommandError):
        fetch_summaries(FakeRunner({}))


def test_fetch_summaries(runner):
    addrs = [s.address for s in fetch_summaries(runner)]
    assert "93.184.216.34" in addrs
    assert ":22" in addrs


def test_correlate_dedupes_by_pid_and_skips_unknown():
    recs = parse_ss(SS_TANP)
    procs = correlate(["93.184.216.34", "198.51.100.9"], recs, {2001: ["/usr/bin/node", "x.ts"]})
    assert [p.pid for p in procs["93.184.216.34"]] == [2001, 2002]
    assert procs["93.184.216.34"][0].args == ["/usr/bin/node", "x.ts"]
    assert procs["93.184.216.34"][1].args == []
    assert procs["198.51.100.9"] == []


def test_correlate_listening_keys_use_local_port():
    recs = parse_ss(SS_TANP)
    procs = correlate([":22", ":80", ":53"], recs, {})
    assert [(p.pid, p.name) for p in procs[":22"]] == [(812, "sshd")]
    assert [p.pid for p in procs[":80"]] == [1234]
    assert procs[":53"] == []


def test_listening_key_never_matches_ip_records():
    recs = parse_ss("ESTAB 0 0 10.0.0.5:22 203.0.113.7:51000 users:((\"sshd\",pid=9,fd=4))\n")
    assert correlate([":22"], recs, {}) == {":22": []}


def test_get_all_process_info_batch(runner):
    procs = get_all_process_info(runner, ["93.184.216.34", ":22", "203.0.113.7"])
    node = procs["93.184.216.34"][0]
    assert node.args == ["/usr/bin/node", "--enable-source-maps", "/srv/app/server.ts"]
    assert procs[":22"][0].args == ["sshd: /usr/sbin/sshd -D"]
    assert procs["203.0.113.7"][0].args == []
    assert runner.calls == ["sudo " + SS_PROCESS_CMD, CMDLINE_SNAPSHOT_CMD]


def test_cmdline_snapshot_failure_is_not_fatal():
    r = FakeRunner({"sudo " + SS_PROCESS_CMD: SS_TANP})
    procs = get_all_process_info(r, ["93.184.216.34"])
    assert [p.pid for p in procs["93.184.216.34"]] == [2001, 2002]
    assert all(p.args == [] for p in procs["93.184.216.34"])


def test_process_socket_failure_is_fatal():
    r = FakeRunner({CMDLINE_SNAPSHOT_CMD: ""})
    with pytest.raises(RemoteCommandError):
        get_all_process_info(r, ["93.184.216.34"])


def test_per_pid_mode_tolerates_missing_pids():
    r = FakeRunner({
        SS_PROCESS_CMD: SS_TANP,
        CMDLINE_PID_CMD.format(pid=2001): "/usr/bin/node\0a.ts\0",
    })
    cfg = CFG(cmdline_mode="per-pid", use_sudo=False, concurrency=2)
    procs = get_all_process_info(r, ["93.184.216.34"], cfg)
    assert [(p.pid, p.args) for p in procs["93.184.216.34"]] == [
        (2001, ["/usr/bin/node", "a.ts"]),
        (2002, []),
    ]
    assert CMDLINE_SNAPSHOT_CMD not in r.calls


def test_fetch_cmdlines_per_pid_skips_unknown_pid():
    r = FakeRunner({CMDLINE_PID_CMD.format(pid=5): "a\0b\0"})
    assert fetch_cmdlines(r, [0, 5, 5]) == {5: ["a", "b"]}
    assert r.calls == [CMDLINE_PID_CMD.format(pid=5)]


def test_target_mode(runner):
    procs = get_process_info_for_target(runner, "93.184.216.34")
    assert {p.name for p in procs} == {"node", "curl"}


def test_bounded_map_keeps_order():
    assert bounded_map(lambda x: x * 2, [3, 1, 2], limit=3) == [6, 2, 4]
    assert bounded_map(lambda x: x, [], limit=4) == []


def test_ssh_runner_argv():
    r = SshRunner("me@box", CFG(ssh_options=["-o", "BatchMode=yes"]))
    assert r.argv("ss -tan") == ["ssh", "-o", "BatchMode=yes", "me@box", "ss -tan"]


def test_ssh_runner_reports_failure(monkeypatch):
    import subprocess

    class Done:
        returncode = 255
        stdout = b""
        stderr = b"Connection refused\n"

    monkeypatch.setattr(subprocess, "run", lambda *a, **kw: Done())
    with pytest.raises(RemoteCommandError) as ei:
        SshRunner("me@box").run("ss -tan")
    assert ei.value.returncode == 255
    assert "Connection refused" in str(ei.value)


def test_ssh_runner_keeps_nul_bytes(monkeypatch):
    import subprocess

    class Done:
        returncode = 0
        stdout = b"1:/bin/sh\x00-c\x00\n"
        stderr = b""

    monkeypatch.setattr(subprocess, "run", lambda *a, **kw: Done())
    assert SshRunner("me@box").run("x") == "1:/bin/sh\0-c\0\n"


def test_bounded_map_interrupt_cancels_queued_calls():
    import time
    calls = []

    def fn(x):
        calls.append(x)
        if x == 0:
            raise KeyboardInterrupt
        time.sleep(0.2)
        return x

    start = time.monotonic()
    with pytest.raises(KeyboardInterrupt):
        bounded_map(fn, range(40), limit=2)
    assert time.monotonic() - start < 2
    assert len(calls) < 40
