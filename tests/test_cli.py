"""
Tests for zilstake/cli.py
"""

import json
from unittest.mock import patch

from click.testing import CliRunner

from zilstake.address import InvalidAddressError
from zilstake.checker import StakeReport
from zilstake.cli import main, render_report
from zilstake.config import AccountingModel, Pool
from zilstake.protocol.positions import PendingClaim, StakePosition, summarize
from zilstake.rpc.client import TransportError


# ============================================================================
# TEST DATA
# ============================================================================

ACCOUNT = "0xb1fe20cd2b856ba1a4e08afb39dff5c80f0cbbca"
ZIL = 10 ** 18

POOL = Pool("0x" + "22" * 20, "Delegation Pool", AccountingModel.POOL_CONTRACT)
LIQUID = Pool(
    "0x" + "33" * 20, "Liquid Pool", AccountingModel.POOL_CONTRACT,
    symbol="lZIL", token_address="0x" + "44" * 20,
)


def make_report() -> StakeReport:
    positions = [
        StakePosition(
            pool=POOL,
            stake=1234 * ZIL,
            reward=ZIL // 2,
            pending_claims=[PendingClaim(block_number=150, amount=ZIL)],
            commission=0.1,
            apr=0.0825,
        ),
        StakePosition(pool=LIQUID, stake=10 * ZIL, reward=0),
    ]
    return StakeReport(
        account=ACCOUNT,
        positions=positions,
        summary=summarize(positions),
        block_number=100,
        block_time=2.0,
    )


def fake_check(report=None, error=None):
    calls = []

    async def check_account(*args):
        calls.append(args)
        if error is not None:
            raise error
        return report

    return check_account, calls


# ============================================================================
# RENDER TESTS
# ============================================================================

class TestRenderReport:
    """Tests for the text report."""

    def test_positions(self):
        text = render_report(make_report())
        assert f"Stakes for {ACCOUNT}" in text
        assert "Delegation Pool" in text
        assert "1,234.000 ZIL" in text
        assert "Reward:    0.500 ZIL" in text
        assert "Commission: 10.00%" in text
        assert "APR (est.): 8.25%" in text
        assert "in ~50 blocks (~1m 40s)" in text

    def test_pending_without_block_time(self):
        report = make_report()
        report.block_time = None
        text = render_report(report)
        assert "in ~50 blocks\n" in text
        assert "~1m 40s" not in text

    def test_unlocked_claim_has_no_eta(self):
        report = make_report()
        report.block_number = 200
        text = render_report(report)
        assert "in ~0 blocks\n" in text

    def test_liquid_has_no_reward_line(self):
        text = render_report(make_report())
        liquid = text.split("Liquid Pool")[1]
        assert "10.000 lZIL" in liquid
        assert "Reward" not in liquid.split("Totals")[0]

    def test_totals(self):
        text = render_report(make_report())
        assert "ZIL: stake 1,234.000, reward 0.500" in text
        assert "lZIL: stake 10.000" in text

    def test_empty(self):
        report = StakeReport(account=ACCOUNT, positions=[], summary=summarize([]))
        assert "No active stakes" in render_report(report)


# ============================================================================
# COMMAND TESTS
# ============================================================================

class TestMain:
    """Tests for the click command."""

    def test_text_output(self):
        check, calls = fake_check(make_report())
        with patch("zilstake.cli.check_account", check):
            result = CliRunner().invoke(main, [ACCOUNT])
        assert result.exit_code == 0, result.output
        assert "Delegation Pool" in result.output
        assert calls[0][0] == ACCOUNT
        assert calls[0][3] is True

    def test_json_output(self):
        check, _ = fake_check(make_report())
        with patch("zilstake.cli.check_account", check):
            result = CliRunner().invoke(main, ["--json", ACCOUNT])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["account"] == ACCOUNT
        assert data["positions"][0]["pending_claims"][0]["eta_seconds"] == 100.0
        assert [p["pool"] for p in data["positions"]] == ["Delegation Pool", "Liquid Pool"]

    def test_options_reach_network(self):
        check, calls = fake_check(make_report())
        with patch("zilstake.cli.check_account", check):
            CliRunner().invoke(main, [
                "--rpc-url", "https://node.test", "--timeout", "5", "--no-legacy", ACCOUNT,
            ])
        _, _, network, discover = calls[0]
        assert network.rpc_url == "https://node.test"
        assert network.timeout == 5.0
        assert discover is False

    def test_invalid_address(self):
        check, _ = fake_check(error=InvalidAddressError("Invalid address: nope"))
        with patch("zilstake.cli.check_account", check):
            result = CliRunner().invoke(main, ["nope"])
        assert result.exit_code == 2
        assert "Invalid address" in result.output

    def test_rpc_failure(self):
        check, _ = fake_check(error=TransportError("Request to https://node.test failed"))
        with patch("zilstake.cli.check_account", check):
            result = CliRunner().invoke(main, [ACCOUNT])
        assert result.exit_code == 1
        assert "failed" in result.output
