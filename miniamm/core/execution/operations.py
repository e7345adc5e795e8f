"""
AMM operations.

Builds the five mutating operations against the current cache snapshot and
runs each through its kind's ``TransactionController``. Inputs are
validated before anything reaches a controller, so a refused operation
leaves every transaction state untouched.

Gas is never estimated on the steady path: each kind sends with a fixed
gas limit. Approve, mint and remove first run a pre-flight estimate whose only
purpose is to fail early with a readable error; the estimate itself is
discarded.
"""

import logging
from typing import Dict, Mapping, Optional

from ...config import Settings, settings as default_settings
from ...providers.base import ContractCall, LedgerWriter, Receipt, TransactionHandle
from ..amounts import format_amount, parse_amount
from ..quoting.engine import swap_output
from ..quoting.previews import MAX_UINT256, SwapDirection, lp_amount_for_percentage
from ..state.cache import StateCache
from ..state.models import StateSnapshot, TokenSlot
from .controller import TransactionController
from .errors import (
    GasEstimationError,
    InsufficientAllowanceError,
    InsufficientBalanceError,
    ValidationError,
)
from .models import SuccessCallback, TransactionKind, TransactionOptions


logger = logging.getLogger(__name__)

WALLET_NOT_CONNECTED = "Wallet not connected or signer not available"


class AmmOperations:
    """Approve / mint / swap / add / remove, wired to per-kind controllers."""

    def __init__(
        self,
        writer: Optional[LedgerWriter],
        cache: StateCache,
        controllers: Mapping[TransactionKind, TransactionController],
        spender: Optional[str] = None,
        config: Optional[Settings] = None,
    ):
        self.writer = writer
        self.cache = cache
        self.controllers: Dict[TransactionKind, TransactionController] = dict(controllers)
        self.config = config or default_settings
        self._spender = spender

    @property
    def spender(self) -> str:
        if self._spender:
            return self._spender
        if self.cache.reader is not None:
            return self.cache.reader.spender
        return self.config.amm_address

    def _gas(self, kind: TransactionKind) -> int:
        return self.config.gas_limits[kind.value]

    def _require_writer(self) -> LedgerWriter:
        if self.writer is None or not self.cache.account:
            raise ValidationError(WALLET_NOT_CONNECTED)
        return self.writer

    async def _probe(self, writer: LedgerWriter, call: ContractCall) -> None:
        try:
            estimate = await writer.estimate_gas(call)
        except Exception as exc:
            logger.error("Gas estimation failed for %s: %s", call.description or call.to, exc)
            raise GasEstimationError() from exc
        logger.debug("Gas estimate for %s: %s", call.description or call.to, estimate)

    # ---------------------------
    # Token operations
    # ---------------------------
    async def approve(
        self,
        slot: TokenSlot,
        infinite: bool = True,
        on_success: Optional[SuccessCallback] = None,
    ) -> Receipt:
        """Approve the pair to spend ``slot``: unlimited, or exactly the current balance."""
        if slot == TokenSlot.LP:
            raise ValidationError("Only pool tokens can be approved")
        writer = self._require_writer()
        snapshot = self.cache.snapshot()
        symbol = snapshot.metadata(slot).symbol
        amount = MAX_UINT256 if infinite else snapshot.balances.for_slot(slot)
        spender = self.spender
        gas = self._gas(TransactionKind.APPROVE)

        async def submit() -> TransactionHandle:
            await self._probe(writer, writer.build_approve(slot, spender, amount))
            return await writer.approve(slot, spender, amount, gas=gas)

        return await self.controllers[TransactionKind.APPROVE].execute(
            submit,
            TransactionOptions(
                success_message=f"{symbol} approved for MiniAMM!",
                on_success=on_success,
                metadata={"token": slot.value, "infinite": infinite},
            ),
        )

    async def mint(
        self,
        slot: TokenSlot,
        amount_text: str,
        on_success: Optional[SuccessCallback] = None,
    ) -> Receipt:
        """Faucet-mint ``amount_text`` of a pool token to the connected account."""
        if slot == TokenSlot.LP:
            raise ValidationError("LP tokens cannot be minted")
        writer = self._require_writer()
        metadata = self.cache.metadata(slot)
        amount = parse_amount(amount_text, metadata.decimals)
        if amount <= 0:
            raise ValidationError("Amount must be greater than zero")
        gas = self._gas(TransactionKind.MINT)

        async def submit() -> TransactionHandle:
            await self._probe(writer, writer.build_mint(slot, amount))
            return await writer.mint(slot, amount, gas=gas)

        return await self.controllers[TransactionKind.MINT].execute(
            submit,
            TransactionOptions(
                success_message=(
                    f"Successfully minted {format_amount(amount, metadata.decimals)} "
                    f"{metadata.symbol}!"
                ),
                on_success=on_success,
                metadata={"token": slot.value, "amount": amount},
            ),
        )

    # ---------------------------
    # Pool operations
    # ---------------------------
    async def swap(
        self,
        direction: SwapDirection,
        amount_text: str,
        on_success: Optional[SuccessCallback] = None,
    ) -> Receipt:
        writer = self._require_writer()
        snapshot = self.cache.snapshot()
        token_in = snapshot.metadata(direction.input_slot)
        token_out = snapshot.metadata(direction.output_slot)

        if snapshot.pool.is_empty:
            raise ValidationError("Pool has no liquidity")
        amount_in = parse_amount(amount_text, token_in.decimals)
        if amount_in <= 0:
            raise ValidationError("Enter an amount to swap")

        reserve_in, reserve_out = direction.reserves(snapshot.pool)
        amount_out = swap_output(amount_in, reserve_in, reserve_out)
        if amount_out <= 0:
            raise ValidationError("Amount too small to produce any output")
        self._check_funds(snapshot, direction.input_slot, amount_in)

        x_amount_in, y_amount_in = direction.swap_arguments(amount_in)
        gas = self._gas(TransactionKind.SWAP)
        gas_price = self.config.fixed_gas_price_wei

        async def submit() -> TransactionHandle:
            return await writer.swap(x_amount_in, y_amount_in, gas=gas, gas_price=gas_price)

        message = (
            f"Swapped {format_amount(amount_in, token_in.decimals)} {token_in.symbol} "
            f"for {format_amount(amount_out, token_out.decimals)} {token_out.symbol}"
        )
        return await self.controllers[TransactionKind.SWAP].execute(
            submit,
            TransactionOptions(
                success_message=message,
                refetch_pool=True,
                on_success=on_success,
                metadata={"direction": direction.value, "amount_in": amount_in},
            ),
        )

    async def add_liquidity(
        self,
        amount0_text: str,
        amount1_text: str,
        on_success: Optional[SuccessCallback] = None,
    ) -> Receipt:
        writer = self._require_writer()
        snapshot = self.cache.snapshot()
        amount0 = parse_amount(amount0_text, snapshot.token0.decimals)
        amount1 = parse_amount(amount1_text, snapshot.token1.decimals)

        if amount0 <= 0 or amount1 <= 0:
            raise ValidationError("Both token amounts must be greater than zero")
        self._check_funds(snapshot, TokenSlot.TOKEN0, amount0, check_allowance=False)
        self._check_funds(snapshot, TokenSlot.TOKEN1, amount1, check_allowance=False)
        self._check_allowance(snapshot, TokenSlot.TOKEN0, amount0)
        self._check_allowance(snapshot, TokenSlot.TOKEN1, amount1)

        gas = self._gas(TransactionKind.ADD_LIQUIDITY)
        gas_price = self.config.fixed_gas_price_wei

        async def submit() -> TransactionHandle:
            return await writer.add_liquidity(amount0, amount1, gas=gas, gas_price=gas_price)

        return await self.controllers[TransactionKind.ADD_LIQUIDITY].execute(
            submit,
            TransactionOptions(
                success_message="Liquidity added successfully!",
                refetch_pool=True,
                on_success=on_success,
                metadata={"amount0": amount0, "amount1": amount1},
            ),
        )

    async def remove_liquidity(
        self,
        lp_text: Optional[str] = None,
        percentage: Optional[int] = None,
        on_success: Optional[SuccessCallback] = None,
    ) -> Receipt:
        """
        Burn LP tokens for the underlying pair.

        An explicit ``lp_text`` amount wins over ``percentage`` of the
        current LP balance.
        """
        writer = self._require_writer()
        snapshot = self.cache.snapshot()
        lp_meta = snapshot.lp_token

        if lp_text:
            lp_amount = parse_amount(lp_text, lp_meta.decimals)
        elif percentage is not None:
            lp_amount = lp_amount_for_percentage(snapshot.balances.lp_token, percentage)
        else:
            lp_amount = 0

        if lp_amount <= 0:
            raise ValidationError("Enter an amount of LP tokens to remove")
        if snapshot.pool.total_supply <= 0:
            raise ValidationError("Pool has no liquidity")
        if lp_amount > snapshot.balances.lp_token:
            raise InsufficientBalanceError(f"Insufficient {lp_meta.symbol} balance")

        gas = self._gas(TransactionKind.REMOVE_LIQUIDITY)

        async def submit() -> TransactionHandle:
            await self._probe(writer, writer.build_remove_liquidity(lp_amount))
            return await writer.remove_liquidity(lp_amount, gas=gas)

        return await self.controllers[TransactionKind.REMOVE_LIQUIDITY].execute(
            submit,
            TransactionOptions(
                success_message="Liquidity removed successfully!",
                refetch_pool=True,
                on_success=on_success,
                metadata={"lp_amount": lp_amount},
            ),
        )

    # ---------------------------
    # Validation
    # ---------------------------
    def _check_funds(
        self,
        snapshot: StateSnapshot,
        slot: TokenSlot,
        amount: int,
        check_allowance: bool = True,
    ) -> None:
        if amount > snapshot.balances.for_slot(slot):
            raise InsufficientBalanceError(f"Insufficient {snapshot.metadata(slot).symbol} balance")
        if check_allowance:
            self._check_allowance(snapshot, slot, amount)

    @staticmethod
    def _check_allowance(snapshot: StateSnapshot, slot: TokenSlot, amount: int) -> None:
        current = snapshot.allowances.for_slot(slot)
        if current < amount:
            symbol = snapshot.metadata(slot).symbol
            raise InsufficientAllowanceError(
                f"{symbol} allowance insufficient (current: {current}, needed: {amount}). "
                f"Approve {symbol} first.",
                details={"current": current, "needed": amount},
            )
