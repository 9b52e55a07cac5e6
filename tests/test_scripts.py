"""Command-line entry points."""

from fitcoach.config.policies_config import POLICY_SET
from fitcoach.isolation.harness import CheckResult, HarnessError, HarnessReport, IsolationBreach
from fitcoach.scripts import render_policies, verify_isolation


def test_render_policies_writes_migration(tmp_path):
    assert render_policies.main(["--out-dir", str(tmp_path)]) == 0

    path = render_policies.migration_path(tmp_path)
    assert path.name == f"{POLICY_SET.version.replace('.', '')}_isolation_policies.sql"
    assert "FORCE ROW LEVEL SECURITY" in path.read_text()


def test_render_policies_stdout(capsys):
    assert render_policies.main(["--stdout"]) == 0
    assert "CREATE POLICY" in capsys.readouterr().out


def _patch_verify(monkeypatch, outcome):
    def fake_verify(harness):
        if isinstance(outcome, Exception):
            raise outcome
        return outcome
    monkeypatch.setattr(verify_isolation, "verify_isolation_for_production", fake_verify)
    monkeypatch.setattr(verify_isolation.SupabaseClient, "get_auth_client", classmethod(lambda cls: None))


def test_verify_isolation_exit_codes(monkeypatch):
    report = HarnessReport(run_id="r1", results=[CheckResult("clients: coach B list", True)])
    _patch_verify(monkeypatch, report)
    assert verify_isolation.main([]) == 0

    _patch_verify(monkeypatch, IsolationBreach("clients: marker visible"))
    assert verify_isolation.main([]) == 1

    _patch_verify(monkeypatch, HarnessError("could not sign in"))
    assert verify_isolation.main([]) == 1
