"""Unit tests for cross-reference wiring."""

import pytest

from dao_deployments.exceptions import MissingDependencyError, WiringMismatchError
from dao_deployments.plan import WIRING_RULES
from dao_deployments.types import WiringRule
from dao_deployments.wiring import ReferenceWiring

OTHER = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"


class TestReferenceWiring:
    """Test the ReferenceWiring class."""

    def test_check_reports_unset_references(self, fake_ledger, executor, deployed):
        """Test a fresh token reports its timelock reference as wrong."""
        wiring = ReferenceWiring(fake_ledger, executor, deployed)
        token_rule = WIRING_RULES[0]

        found = wiring.check(token_rule)

        assert len(found) == 1
        assert found[0].subject == "timelock()"
        assert found[0].expected == deployed["timelock"].proxy_address

    def test_sets_and_verifies_missing_references(self, fake_ledger, executor, deployed):
        """Test only the token and timelock setters are needed after deployment."""
        wiring = ReferenceWiring(fake_ledger, executor, deployed)

        records = wiring.wire(WIRING_RULES)

        assert len(records) == 2
        assert [c.to for c in fake_ledger.sent] == [
            deployed["token"].proxy_address,
            deployed["timelock"].proxy_address,
        ]
        token = fake_ledger.at(deployed["token"].proxy_address)
        assert token.refs["timelock()"] == deployed["timelock"].proxy_address

    def test_rerun_is_a_no_op(self, fake_ledger, executor, deployed):
        """Test a second pass submits nothing."""
        wiring = ReferenceWiring(fake_ledger, executor, deployed)
        wiring.wire(WIRING_RULES)
        fake_ledger.sent.clear()

        assert wiring.wire(WIRING_RULES) == []
        assert fake_ledger.sent == []

    def test_setter_passes_dependencies_in_order(self, fake_ledger, executor, deployed):
        """Test multi-reference setters receive addresses in rule order."""
        helper = fake_ledger.at(deployed["dao_helper"].proxy_address)
        helper.refs["justGovernance()"] = OTHER
        wiring = ReferenceWiring(fake_ledger, executor, deployed)

        wiring.apply(WIRING_RULES[2])

        assert helper.refs == {
            "justToken()": deployed["token"].proxy_address,
            "justGovernance()": deployed["governance"].proxy_address,
            "justTimelock()": deployed["timelock"].proxy_address,
        }

    def test_mismatch_after_setter_is_fatal(self, fake_ledger, executor, deployed):
        """Test a setter that does not stick raises WiringMismatchError."""
        fake_ledger.at(deployed["token"].proxy_address).setters_stick = False
        wiring = ReferenceWiring(fake_ledger, executor, deployed)

        with pytest.raises(WiringMismatchError, match="still wrong"):
            wiring.apply(WIRING_RULES[0])

        assert len(fake_ledger.sent) == 1

    def test_verify_only_rule_mismatch_is_fatal(self, fake_ledger, executor, deployed):
        """Test a wrong reference without a setter raises without submitting."""
        fake_ledger.at(deployed["governance"].proxy_address).refs["timelock()"] = OTHER
        wiring = ReferenceWiring(fake_ledger, executor, deployed)

        with pytest.raises(WiringMismatchError, match="fixed references"):
            wiring.apply(WIRING_RULES[-1])

        assert fake_ledger.sent == []

    def test_unknown_component(self, fake_ledger, executor, deployed):
        """Test rules naming an unrecorded component are rejected."""
        wiring = ReferenceWiring(fake_ledger, executor, deployed)

        with pytest.raises(MissingDependencyError, match="oracle"):
            wiring.check(WiringRule("oracle", (("justToken()", "token"),)))
