import textwrap

from hostprep.config.models import FirewallSpec
from hostprep.directives.firewall import FirewallDirective, parse_ufw_status
from hostprep.reconcile.directive import ProbeState

ACTIVE = textwrap.dedent("""\
    Status: active
    Logging: on (low)
    Default: deny (incoming), allow (outgoing), disabled (routed)
    New profiles: skip

    To                         Action      From
    --                         ------      ----
    22/tcp                     ALLOW IN    45.122.120.72
    22/tcp                     ALLOW IN    115.241.91.27
    22/tcp                     ALLOW IN    150.129.237.38
    80/tcp                     ALLOW IN    Anywhere
    443/tcp                    ALLOW IN    Anywhere
    2222/tcp                   ALLOW IN    Anywhere
    3000/tcp                   ALLOW IN    Anywhere
    8000/tcp                   ALLOW IN    Anywhere
    80/tcp (v6)                ALLOW IN    Anywhere (v6)
""")


def test_parse_ufw_status_verbose():
    st = parse_ufw_status(ACTIVE)
    assert st.active
    assert (st.incoming, st.outgoing) == ("deny", "allow")
    assert ("22/tcp", "ALLOW", "45.122.120.72") in st.rules
    assert ("80/tcp", "ALLOW", "Anywhere") in st.rules
    assert len(st.rules) == 8


def test_configured_firewall_is_satisfied(runner, host):
    runner.install("ufw")
    runner.on("ufw", "status", "verbose", stdout=ACTIVE)

    assert FirewallDirective(FirewallSpec()).probe(host).state == ProbeState.SATISFIED


def test_inactive_firewall_gets_policy_rules_and_enable(runner, host):
    runner.install("ufw")
    runner.on("ufw", "status", "verbose", stdout="Status: inactive\n")
    d = FirewallDirective(FirewallSpec())

    probe = d.probe(host)
    assert probe.state == ProbeState.DIVERGENT
    d.apply(host, probe)

    argvs = runner.argvs()
    assert ["ufw", "default", "deny", "incoming"] in argvs
    assert ["ufw", "default", "allow", "outgoing"] in argvs
    assert ["ufw", "allow", "from", "115.241.91.27", "to", "any", "port", "22", "proto", "tcp"] in argvs
    assert ["ufw", "allow", "8000/tcp"] in argvs
    assert argvs[-1] == ["ufw", "--force", "enable"]
    assert not runner.ran("ufw", "reload")


def test_active_firewall_only_adds_missing_rules_and_reloads(runner, host):
    runner.install("ufw")
    partial = ACTIVE.replace("3000/tcp                   ALLOW IN    Anywhere\n", "")
    runner.on("ufw", "status", "verbose", stdout=partial)
    d = FirewallDirective(FirewallSpec())

    d.apply(host, d.probe(host))

    allows = [a for a in runner.argvs() if a[:2] == ["ufw", "allow"]]
    assert allows == [["ufw", "allow", "3000/tcp"]]
    assert not runner.ran("ufw", "default")
    assert runner.argvs()[-1] == ["ufw", "reload"]


def test_no_ufw_is_unsupported(host):
    probe = FirewallDirective(FirewallSpec()).probe(host)
    assert probe.state == ProbeState.UNSUPPORTED
    assert probe.message == "ufw not installed; skipping firewall configuration."
