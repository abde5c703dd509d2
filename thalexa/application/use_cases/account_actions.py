from __future__ import annotations

from thalexa.application.dto.account import (
    AccountActionOutput,
    CreateAccountInput,
    UpgradeSubscriptionInput,
)
from thalexa.domain.entities.subscription import SubscriptionTier
from thalexa.domain.exceptions import InvalidCallArgumentError
from thalexa.domain.services.escrow_transactions import EscrowTransactionBuilder
from thalexa.domain.services.zklogin import hash_email

from .execute_transaction import TransactionExecutor
from .zklogin_common import ZkLoginSigner


class AccountActionsUseCase:
    def __init__(
        self,
        *,
        builder: EscrowTransactionBuilder,
        executor: TransactionExecutor,
        subscription_tiers: dict[int, SubscriptionTier],
    ):
        self._builder = builder
        self._executor = executor
        self._subscription_tiers = subscription_tiers

    async def create_account(self, command: CreateAccountInput, *, signer: ZkLoginSigner) -> AccountActionOutput:
        if "@" not in command.email:
            raise InvalidCallArgumentError("A valid email is required.")
        # Only the digest of the normalized email leaves this process.
        call = self._builder.create_account(email_hash=hash_email(command.email))
        receipt = await self._executor.execute(call, signer=signer)
        return AccountActionOutput(
            account_id=receipt.result.created_object_id("::UserAccount"),
            digest=receipt.digest,
            transaction_id=receipt.transaction.id,
        )

    async def upgrade_subscription(
        self,
        command: UpgradeSubscriptionInput,
        *,
        signer: ZkLoginSigner,
    ) -> AccountActionOutput:
        payment_amount = command.payment_amount
        if payment_amount is None:
            tier = self._subscription_tiers.get(command.tier)
            if tier is None:
                raise InvalidCallArgumentError(f"Unknown subscription tier: {command.tier}.")
            payment_amount = tier.price_mist
        call = self._builder.upgrade_subscription(
            account_id=command.account_id,
            tier=command.tier,
            payment_amount=payment_amount,
        )
        receipt = await self._executor.execute(call, signer=signer)
        return AccountActionOutput(
            account_id=command.account_id,
            digest=receipt.digest,
            transaction_id=receipt.transaction.id,
        )

    def list_tiers(self) -> list[SubscriptionTier]:
        return [self._subscription_tiers[key] for key in sorted(self._subscription_tiers)]
