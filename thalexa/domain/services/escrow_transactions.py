from __future__ import annotations

import re
from typing import Callable
from uuid import uuid4

from thalexa.domain.entities.move_call import CallArgument, MoveCall
from thalexa.domain.entities.product import ProductDraft
from thalexa.domain.entities.subscription import DEFAULT_SUBSCRIPTION_TIERS, SubscriptionTier
from thalexa.domain.exceptions import InvalidCallArgumentError
from thalexa.domain.services.units import is_valid_sui_address, normalize_object_id


ESCROW_MODULE = "escrow"
DEFAULT_CLOCK_ID = "0x6"
EMAIL_HASH_PATTERN = re.compile(r"^[a-fA-F0-9]{64}$")
MAX_U64 = 2**64 - 1


def _default_request_id() -> str:
    return uuid4().hex


def _pure(type_tag: str, value) -> CallArgument:
    return CallArgument(kind="pure", type_tag=type_tag, value=value)


def _object(object_id: str) -> CallArgument:
    return CallArgument(kind="object", type_tag="object", value=object_id)


def _split_gas(amount: int) -> CallArgument:
    return CallArgument(kind="split_coin", type_tag="coin<0x2::sui::SUI>", value=amount)


def _text(value: str) -> CallArgument:
    return _pure("vector<u8>", value.encode("utf-8"))


class EscrowTransactionBuilder:
    """Builds the escrow package entry-point calls.

    Pure construction: no I/O and no knowledge of on-chain state. Lifecycle
    preconditions (escrow state, account ownership) are left to the chain.
    """

    def __init__(
        self,
        *,
        package_id: str,
        config_id: str,
        clock_id: str = DEFAULT_CLOCK_ID,
        module: str = ESCROW_MODULE,
        subscription_tiers: dict[int, SubscriptionTier] | None = None,
        request_id_factory: Callable[[], str] = _default_request_id,
    ):
        self._package_id = package_id
        self._config_id = config_id
        self._clock_id = clock_id
        self._module = module
        if subscription_tiers is None:
            subscription_tiers = {tier.id: tier for tier in DEFAULT_SUBSCRIPTION_TIERS}
        self._subscription_tiers = subscription_tiers
        self._request_id_factory = request_id_factory

    @property
    def package_id(self) -> str:
        return self._package_id

    def struct_type(self, name: str) -> str:
        return f"{self._package_id}::{self._module}::{name}"

    def create_account(self, *, email_hash: str) -> MoveCall:
        if not EMAIL_HASH_PATTERN.match(email_hash or ""):
            raise InvalidCallArgumentError("email_hash must be a 32-byte hex digest.")
        return self._call(
            "create_account",
            _pure("vector<u8>", bytes.fromhex(email_hash)),
        )

    def upgrade_subscription(self, *, account_id: str, tier: int, payment_amount: int) -> MoveCall:
        tier_info = self._subscription_tiers.get(tier)
        if tier_info is None:
            raise InvalidCallArgumentError(f"Unknown subscription tier: {tier}.")
        payment = self._amount("payment_amount", payment_amount, allow_zero=True)
        if payment < tier_info.price_mist:
            raise InvalidCallArgumentError(
                f"payment_amount {payment} is below the {tier_info.name} tier price {tier_info.price_mist}."
            )
        return self._call(
            "upgrade_subscription",
            _object(self._object_id("account_id", account_id)),
            _split_gas(payment),
            _pure("u8", tier),
            _object(self._clock_id),
            amount=payment,
        )

    def validate_product(self, *, account_id: str, product: ProductDraft) -> str:
        """Check everything about a product draft except its pinned content ids.

        Returns the normalized account id.
        """
        if not product.name.strip():
            raise InvalidCallArgumentError("Product name is required.")
        if not product.currency.strip():
            raise InvalidCallArgumentError("Product currency is required.")
        self._amount("quantity", product.quantity)
        self._amount("unit_price", product.unit_price, allow_zero=True)
        return self._object_id("account_id", account_id)

    def create_product(self, *, account_id: str, product: ProductDraft) -> MoveCall:
        account_id = self.validate_product(account_id=account_id, product=product)
        return self._call(
            "create_product",
            _object(account_id),
            _text(product.name),
            _text(product.description),
            _text(product.category),
            _text(product.metadata_ipfs),
            _text(product.image_ipfs),
            _pure("u64", product.quantity),
            _pure("u64", product.unit_price),
            _text(product.currency),
            _text(product.manufacturer),
            _text(product.origin_location),
            _text(product.batch_number),
            _object(self._clock_id),
        )

    def create_escrow(
        self,
        *,
        seller: str,
        arbiter: str,
        product_id: str,
        amount: int,
        terms: str,
    ) -> MoveCall:
        seller = self._address("seller", seller)
        arbiter = self._address("arbiter", arbiter)
        product_id = self._object_id("product_id", product_id)
        amount = self._amount("amount", amount)
        return self._call(
            "create_escrow",
            _pure("address", seller),
            _pure("address", arbiter),
            _pure("ID", product_id),
            _split_gas(amount),
            _text(terms),
            _object(self._config_id),
            _object(self._clock_id),
            receiver=seller,
            amount=amount,
            product_id=product_id,
        )

    def accept_escrow(self, *, escrow_id: str) -> MoveCall:
        escrow_id = self._object_id("escrow_id", escrow_id)
        return self._call(
            "accept_escrow",
            _object(escrow_id),
            _object(self._clock_id),
            escrow_id=escrow_id,
        )

    def update_tracking(self, *, escrow_id: str, location: str, status: str) -> MoveCall:
        escrow_id = self._object_id("escrow_id", escrow_id)
        if not location.strip():
            raise InvalidCallArgumentError("location is required.")
        if not status.strip():
            raise InvalidCallArgumentError("status is required.")
        return self._call(
            "update_tracking",
            _object(escrow_id),
            _text(location),
            _text(status),
            _object(self._clock_id),
            escrow_id=escrow_id,
        )

    def complete_escrow(self, *, escrow_id: str, seller: str | None = None) -> MoveCall:
        escrow_id = self._object_id("escrow_id", escrow_id)
        receiver = self._address("seller", seller) if seller else None
        return self._call(
            "complete_escrow",
            _object(escrow_id),
            _object(self._config_id),
            _object(self._clock_id),
            receiver=receiver,
            escrow_id=escrow_id,
        )

    def dispute_escrow(self, *, escrow_id: str) -> MoveCall:
        escrow_id = self._object_id("escrow_id", escrow_id)
        return self._call(
            "dispute_escrow",
            _object(escrow_id),
            _object(self._clock_id),
            escrow_id=escrow_id,
        )

    def cancel_escrow(self, *, escrow_id: str) -> MoveCall:
        escrow_id = self._object_id("escrow_id", escrow_id)
        return self._call(
            "cancel_escrow",
            _object(escrow_id),
            _object(self._clock_id),
            escrow_id=escrow_id,
        )

    def verify_product(self, *, product_id: str) -> MoveCall:
        product_id = self._object_id("product_id", product_id)
        return self._call(
            "verify_product",
            _object(product_id),
            _object(self._clock_id),
            product_id=product_id,
        )

    def _call(
        self,
        function: str,
        *arguments: CallArgument,
        receiver: str | None = None,
        amount: int = 0,
        product_id: str | None = None,
        escrow_id: str | None = None,
    ) -> MoveCall:
        return MoveCall(
            package_id=self._package_id,
            module=self._module,
            function=function,
            arguments=tuple(arguments),
            request_id=self._request_id_factory(),
            receiver=receiver,
            amount=amount,
            product_id=product_id,
            escrow_id=escrow_id,
        )

    @staticmethod
    def _address(field: str, value: str) -> str:
        if not is_valid_sui_address(value):
            raise InvalidCallArgumentError(f"{field} must be a 0x-prefixed 32-byte Sui address.")
        return value.lower()

    @staticmethod
    def _object_id(field: str, value: str) -> str:
        try:
            return normalize_object_id(value)
        except ValueError as exc:
            raise InvalidCallArgumentError(f"{field} is not a valid object id.") from exc

    @staticmethod
    def _amount(field: str, value: int, *, allow_zero: bool = False) -> int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidCallArgumentError(f"{field} must be an integer amount in MIST.")
        if value < 0 or (value == 0 and not allow_zero):
            raise InvalidCallArgumentError(f"{field} must be {'non-negative' if allow_zero else 'positive'}.")
        if value > MAX_U64:
            raise InvalidCallArgumentError(f"{field} exceeds u64.")
        return value
