import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from clob_bridge.client.gateway import BalanceAllowance
from clob_bridge.core.session import SessionBuilder
from clob_bridge.domain.response import AuthStory, Response
from clob_bridge.utils.enums import PROBE_ORDER, AuthStatus, SignatureMode

PROBE_FAILED_ERROR = "All authentication methods failed"
PROBE_RECOMMENDATION = (
    "Visit polymarket.com, connect your wallet, and make at least one trade. Then retry."
)


@dataclass
class ProbeAttempt:
    mode: SignatureMode
    story: AuthStory
    balance: Optional[BalanceAllowance] = None

    @property
    def success(self) -> bool:
        return self.story.auth_status is AuthStatus.SUCCESS

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"signature_type": self.mode.label, "success": self.success}
        if self.success:
            result["balance"] = self.balance.balance
        else:
            result["error"] = self.story.error_details
        return result


@dataclass
class ProbeOutcome:
    """Ordered attempts; at most one succeeded and, if so, it is the last"""
    funder_address: Optional[str]
    attempts: List[ProbeAttempt] = field(default_factory=list)

    @property
    def winner(self) -> Optional[ProbeAttempt]:
        if self.attempts and self.attempts[-1].success:
            return self.attempts[-1]
        return None

    def to_response(self) -> Response:
        results = [attempt.to_dict() for attempt in self.attempts]
        winner = self.winner
        if winner is None:
            return Response.fail(
                PROBE_FAILED_ERROR,
                data={"probe_results": results, "recommendation": PROBE_RECOMMENDATION},
            )
        return Response(
            success=True,
            data={
                "working_config": {
                    "signature_type": winner.mode.label,
                    "funder_address": self.funder_address,
                },
                "balance": winner.balance.balance,
                "allowances": winner.balance.allowances,
                "probe_results": results,
            },
            auth_story=winner.story,
        )


class AuthProbe:
    """
    Discover which signature mode works for the wallet by trying each mode in a
    fixed order, strictly one after another, and stopping at the first mode whose
    session build and balance query both succeed.
    """

    def __init__(self, logger, builder: SessionBuilder, run_id: str,
                 modes: Sequence[SignatureMode] = PROBE_ORDER):
        self.logger = logger
        self.builder = builder
        self.run_id = run_id
        self.modes = tuple(modes)

    async def run(self, funder_text: Optional[str] = None) -> ProbeOutcome:
        outcome = ProbeOutcome(funder_address=funder_text)
        for mode in self.modes:
            attempt = await self._attempt(mode, funder_text)
            outcome.attempts.append(attempt)
            if attempt.success:
                self.logger.info(
                    f"Auth probe succeeded with {mode.label}",
                    extra={"signature_type": mode.label,
                           "balance": attempt.balance.balance},
                )
                break
        else:
            self.logger.warning(
                f"Auth probe failed for all {len(self.modes)} signature types"
            )
        return outcome

    async def _attempt(self, mode: SignatureMode, funder_text: Optional[str]) -> ProbeAttempt:
        story = AuthStory.pending(self.run_id, self.builder.identity.address, mode, funder_text)
        try:
            session = await self.builder.build(mode, funder_text)
            balance = await session.balance_and_allowance()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            story.fail(e)
            self.logger.debug(
                f"Auth probe failed for {mode.label}: {e}",
                extra={"signature_type": mode.label},
            )
            return ProbeAttempt(mode=mode, story=story)

        story.succeed(balance.balance)
        return ProbeAttempt(mode=mode, story=story, balance=balance)
