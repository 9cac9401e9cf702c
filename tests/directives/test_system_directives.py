from hostprep.directives.system import SwapDirective, TimezoneDirective, fstab_has
from hostprep.reconcile.directive import ProbeState

FSTAB = "UUID=abc / ext4 defaults 0 1\n"


def test_fstab_has_ignores_comments():
    assert fstab_has("/swapfile none swap sw 0 0\n", "/swapfile")
    assert not fstab_has("# /swapfile none swap sw 0 0\n", "/swapfile")


def test_swap_created_activated_and_persisted(runner, host):
    runner.install("swapon")
    runner.add_file("/etc/fstab", FSTAB)
    d = SwapDirective("/swapfile", 3)

    d.apply(host, d.probe(host))

    assert ["fallocate", "-l", str(3 * 1024 ** 3), "/swapfile"] in runner.argvs()
    for argv in (["chmod", "600", "/swapfile"], ["mkswap", "/swapfile"], ["swapon", "/swapfile"]):
        assert argv in runner.argvs()
    assert runner.files["/etc/fstab"] == (FSTAB + "/swapfile none swap sw 0 0\n").encode()


def test_fallocate_failure_falls_back_to_dd(runner, host):
    runner.install("swapon")
    runner.on("fallocate", rc=1, stderr="fallocate: fallocate failed: Operation not supported")
    d = SwapDirective("/swapfile", 1)

    d.apply(host, d.probe(host))

    assert ["dd", "if=/dev/zero", "of=/swapfile", "bs=1M", "count=1024"] in runner.argvs()


def test_active_swap_only_persists(runner, host):
    runner.install("swapon")
    runner.on("swapon", "--show=NAME", stdout="/swapfile\n")
    runner.add_file("/etc/fstab", FSTAB)
    d = SwapDirective()

    d.apply(host, d.probe(host))

    assert not runner.ran("mkswap")
    assert b"/swapfile none swap sw 0 0" in runner.files["/etc/fstab"]


def test_active_and_persisted_swap_is_satisfied(runner, host):
    runner.install("swapon")
    runner.on("swapon", "--show=NAME", stdout="/swapfile\n")
    runner.add_file("/etc/fstab", FSTAB + "/swapfile none swap sw 0 0\n")

    assert SwapDirective().probe(host).state == ProbeState.SATISFIED


def test_timezone_set_when_different(runner, host):
    runner.install("timedatectl")
    runner.on("timedatectl", "show", stdout="Etc/UTC\n")
    d = TimezoneDirective("Asia/Kolkata")

    d.apply(host, d.probe(host))

    assert ["timedatectl", "set-timezone", "Asia/Kolkata"] in runner.argvs()


def test_timezone_without_timedatectl_is_unsupported(host):
    probe = TimezoneDirective("Asia/Kolkata").probe(host)
    assert probe.state == ProbeState.UNSUPPORTED
    assert probe.message == "timedatectl not available; skipping timezone configuration."
