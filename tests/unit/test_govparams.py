"""Unit tests for governance parameter reconciliation."""

import logging

import pytest

from dao_deployments.exceptions import MissingDependencyError, VerificationError
from dao_deployments.govparams import GovernanceParameterReconciler
from dao_deployments.hashing import function_selector
from dao_deployments.plan import build_governance_params
from dao_deployments.types import GovParam

UPDATE = function_selector("updateGovParam(uint8,uint256)")


@pytest.fixture
def reconciler(fake_ledger, executor, deployed) -> GovernanceParameterReconciler:
    return GovernanceParameterReconciler(fake_ledger, executor, deployed, "governance")


@pytest.fixture
def governance(fake_ledger, deployed):
    return fake_ledger.at(deployed["governance"].proxy_address)


class TestGovernanceParameterReconciler:
    """Test the GovernanceParameterReconciler class."""

    def test_initialized_values_verify_clean(self, reconciler, orchestrator_config):
        """Test a freshly initialized governance already holds the initializer values."""
        assert reconciler.verify(build_governance_params(orchestrator_config)) == []

    def test_fresh_deployment_needs_no_updates(self, reconciler, orchestrator_config, fake_ledger):
        """Test reconciling straight after deployment submits nothing."""
        report = reconciler.reconcile(build_governance_params(orchestrator_config))

        assert report.changed == 0
        assert report.skipped == 5
        assert fake_ledger.sent == []

    def test_only_drifted_parameter_is_updated(self, reconciler, orchestrator_config, fake_ledger, governance):
        """Test one changed slot costs exactly one updateGovParam."""
        governance.gov_params[GovParam.VOTING_DURATION] = 60

        report = reconciler.reconcile(build_governance_params(orchestrator_config))

        assert report.changed == 1
        assert [c.data[:4] for c in fake_ledger.sent] == [UPDATE]
        assert fake_ledger.sent[0].description == f"set VOTING_DURATION to {orchestrator_config.voting_period}"
        assert governance.gov_params[GovParam.VOTING_DURATION] == orchestrator_config.voting_period

    def test_parameters_not_listed_are_left_alone(self, reconciler, fake_ledger, governance):
        """Test only the requested slots are touched."""
        governance.gov_params[GovParam.PROPOSAL_STAKE] = 7

        report = reconciler.reconcile({GovParam.QUORUM: 10**24})

        assert report.changed == 1
        assert governance.gov_params[GovParam.QUORUM] == 10**24
        assert governance.gov_params[GovParam.PROPOSAL_STAKE] == 7

    def test_verify_reports_every_difference(self, reconciler, governance, caplog):
        """Test verification lists each differing slot and logs it."""
        governance.gov_params[GovParam.DEFEATED_REFUND_PERCENTAGE] = 90

        with caplog.at_level(logging.ERROR, logger="dao_deployments.govparams"):
            found = reconciler.verify({GovParam.DEFEATED_REFUND_PERCENTAGE: 25, GovParam.QUORUM: 5})

        assert [(d.check, d.subject, d.expected, d.actual) for d in found] == [
            ("governance-parameter", "DEFEATED_REFUND_PERCENTAGE", 25, 90),
            ("governance-parameter", "QUORUM", 5, 0),
        ]
        assert "DEFEATED_REFUND_PERCENTAGE" in caplog.text

    def test_unconverged_parameter_raises(self, reconciler, governance):
        """Test an update that does not stick fails verification."""
        governance.setters_stick = False

        with pytest.raises(VerificationError, match="governance parameter") as exc_info:
            reconciler.reconcile({GovParam.TIMELOCK_DELAY: 172800})

        assert exc_info.value.discrepancies[0].subject == "TIMELOCK_DELAY"

    def test_requires_governance(self, fake_ledger, executor, deployed):
        """Test a missing governance component is reported before any read."""
        components = {name: c for name, c in deployed.items() if name != "governance"}

        with pytest.raises(MissingDependencyError, match="governance"):
            GovernanceParameterReconciler(fake_ledger, executor, components, "governance")
