from __future__ import annotations

import asyncio
import unittest

import jwt as pyjwt

from thalexa.application.dto.account import CreateAccountInput, UpgradeSubscriptionInput
from thalexa.application.dto.escrow import CompleteEscrowInput, CreateEscrowInput, UpdateTrackingInput
from thalexa.application.dto.product import CreateProductInput, PinnedContent, ProductImage
from thalexa.application.dto.zklogin import BeginZkLoginInput, CompleteZkLoginInput
from thalexa.application.use_cases.account_actions import AccountActionsUseCase
from thalexa.application.use_cases.begin_zklogin import BeginZkLoginUseCase
from thalexa.application.use_cases.chain_queries import ChainQueryService
from thalexa.application.use_cases.complete_zklogin import CompleteZkLoginUseCase
from thalexa.application.use_cases.escrow_actions import EscrowActionsUseCase
from thalexa.application.use_cases.execute_transaction import TransactionExecutor
from thalexa.application.use_cases.product_actions import ProductActionsUseCase
from thalexa.application.use_cases.zklogin_common import ZkLoginSigner, build_provider_configs, build_signer
from thalexa.domain.entities.auth_session import OAuthProvider
from thalexa.domain.entities.escrow import EscrowState
from thalexa.domain.entities.subscription import DEFAULT_SUBSCRIPTION_TIERS
from thalexa.domain.entities.units import MIST_PER_SUI
from thalexa.domain.exceptions import InvalidCallArgumentError, RejectedError
from thalexa.domain.services.escrow_transactions import EscrowTransactionBuilder
from thalexa.domain.services.zklogin import hash_email
from thalexa.infrastructure.chain.local_chain import LocalEscrowChain
from thalexa.infrastructure.db.repositories.transaction_ledger_repository import InMemoryTransactionLedger
from thalexa.infrastructure.security.ed25519_keys import Ed25519KeyService
from thalexa.infrastructure.security.jwt_decoder import PyJwtClaimsDecoder
from thalexa.infrastructure.session.memory_session_store import InMemorySessionStore


PACKAGE_ID = "0x" + "a" * 64
CONFIG_ID = "0x" + "b" * 64
ARBITER = "0x" + "c" * 64
TEST_SECRET = "thalexa-test-secret-with-enough-bytes"


class FakeSaltPort:
    async def fetch_salt(self, *, jwt: str) -> str:
        _ = jwt
        return "129390038577185583942388216820280642146"


class FakeProofPort:
    async def fetch_proof(self, request) -> dict:
        return {"proofPoints": {"a": ["1"], "b": [["2"]], "c": ["3"]}, "issBase64Details": {}, "headerBase64": ""}


class FakePinning:
    def __init__(self):
        self.uploads: list[tuple[str, str]] = []
        self.unpinned: list[str] = []

    async def upload_file(self, *, content, filename, content_type, name=None, keyvalues=None) -> PinnedContent:
        self.uploads.append(("file", filename))
        return PinnedContent(cid="bafy-image", size=len(content), timestamp="", gateway_url="")

    async def upload_json(self, *, payload, name, keyvalues=None) -> PinnedContent:
        self.uploads.append(("json", payload["name"]))
        return PinnedContent(cid="bafy-meta", size=1, timestamp="", gateway_url="")

    async def unpin(self, *, cid) -> None:
        self.unpinned.append(cid)


class EscrowScenarioTests(unittest.TestCase):
    def setUp(self):
        self.keys = Ed25519KeyService()
        self.decoder = PyJwtClaimsDecoder()
        self.store = InMemorySessionStore()
        self.clock = {"ms": 1_700_000_000_000}
        self.chain = LocalEscrowChain(
            package_id=PACKAGE_ID,
            key_port=self.keys,
            jwt_decoder=self.decoder,
            clock_ms=lambda: self.clock["ms"],
        )
        self.ledger = InMemoryTransactionLedger()
        self.builder = EscrowTransactionBuilder(package_id=PACKAGE_ID, config_id=CONFIG_ID)
        executor = TransactionExecutor(chain_rpc=self.chain, ledger=self.ledger)
        self.pinning = FakePinning()
        self.accounts = AccountActionsUseCase(
            builder=self.builder,
            executor=executor,
            subscription_tiers={tier.id: tier for tier in DEFAULT_SUBSCRIPTION_TIERS},
        )
        self.products = ProductActionsUseCase(builder=self.builder, executor=executor, pinning=self.pinning)
        self.escrows = EscrowActionsUseCase(builder=self.builder, executor=executor)
        self.queries = ChainQueryService(chain_rpc=self.chain, package_id=PACKAGE_ID)

        self.seller = self._login("seller")
        self.buyer = self._login("buyer")

    def _login(self, subject: str) -> ZkLoginSigner:
        begin = BeginZkLoginUseCase(
            session_store=self.store,
            key_port=self.keys,
            providers=build_provider_configs(client_ids={OAuthProvider.GOOGLE: "client-1"}),
            redirect_url="https://app.example.com/callback",
            session_id_factory=lambda: subject,
        )
        started = begin.execute(BeginZkLoginInput(provider=OAuthProvider.GOOGLE, max_epoch=10))
        token = pyjwt.encode(
            {
                "sub": subject,
                "aud": "client-1",
                "iss": "https://accounts.google.com",
                "exp": 4_000_000_000,
                "nonce": started.nonce,
            },
            TEST_SECRET,
            algorithm="HS256",
        )
        complete = CompleteZkLoginUseCase(
            session_store=self.store,
            jwt_decoder=self.decoder,
            salt_port=FakeSaltPort(),
            proof_port=FakeProofPort(),
        )
        asyncio.run(complete.execute(CompleteZkLoginInput(session_id=subject, jwt=token, state=started.state)))
        return build_signer(self.store.load(session_id=subject), key_port=self.keys, jwt_decoder=self.decoder)

    def _list_product(self) -> str:
        account = asyncio.run(
            self.accounts.create_account(CreateAccountInput(email="Seller@Example.com"), signer=self.seller)
        )
        output = asyncio.run(
            self.products.create_product(
                CreateProductInput(
                    account_id=account.account_id,
                    name="Coffee",
                    description="Single origin",
                    category="Agriculture",
                    quantity=100,
                    unit_price=2 * MIST_PER_SUI,
                    currency="SUI",
                    manufacturer="Fazenda Boa Vista",
                    origin_location="Minas Gerais",
                    batch_number="2026-10",
                    image=ProductImage(content=b"\x89PNG", filename="coffee.png", content_type="image/png"),
                ),
                signer=self.seller,
            )
        )
        return output.product_id

    def _open_escrow(self, product_id: str, amount: int = 4 * MIST_PER_SUI) -> str:
        output = asyncio.run(
            self.escrows.create_escrow(
                CreateEscrowInput(
                    seller=self.seller.address,
                    arbiter=ARBITER,
                    product_id=product_id,
                    amount=amount,
                    terms="Deliver within 30 days",
                ),
                signer=self.buyer,
            )
        )
        return output.escrow_id

    def _track(self, escrow_id: str, status: str) -> None:
        asyncio.run(
            self.escrows.update_tracking(
                UpdateTrackingInput(escrow_id=escrow_id, location="Santos", status=status),
                signer=self.seller,
            )
        )

    def test_full_escrow_lifecycle_pays_the_seller(self):
        product_id = self._list_product()
        self.chain.fund(self.buyer.address, 10 * MIST_PER_SUI)
        escrow_id = self._open_escrow(product_id)

        escrow = asyncio.run(self.queries.get_escrow(escrow_id=escrow_id))
        self.assertEqual(escrow.state, EscrowState.PENDING)
        self.assertEqual(escrow.buyer, self.buyer.address)
        self.assertEqual(escrow.terms, "Deliver within 30 days")
        self.assertEqual(asyncio.run(self.queries.get_balance(address=self.buyer.address)), 6 * MIST_PER_SUI)

        asyncio.run(self.escrows.accept_escrow(escrow_id=escrow_id, signer=self.seller))
        self._track(escrow_id, "Shipped")
        self.assertEqual(asyncio.run(self.queries.get_escrow(escrow_id=escrow_id)).state, EscrowState.IN_TRANSIT)
        self._track(escrow_id, "Delivered")
        self.assertEqual(asyncio.run(self.queries.get_escrow(escrow_id=escrow_id)).state, EscrowState.DELIVERED)

        output = asyncio.run(
            self.escrows.complete_escrow(CompleteEscrowInput(escrow_id=escrow_id), signer=self.buyer)
        )
        self.assertEqual(output.status, "confirmed")

        escrow = asyncio.run(self.queries.get_escrow(escrow_id=escrow_id))
        self.assertEqual(escrow.state, EscrowState.COMPLETED)
        self.assertGreater(escrow.completed_at, 0)
        self.assertEqual(len(escrow.tracking_updates), 2)
        self.assertEqual(asyncio.run(self.queries.get_balance(address=self.seller.address)), 4 * MIST_PER_SUI)

        events = asyncio.run(self.queries.query_events(event_name="EscrowCompleted"))
        self.assertEqual(len(events.events), 1)
        self.assertEqual(events.events[0].fields["escrow_id"], escrow_id)

        history = self.ledger.list_for_address(address=self.seller.address)
        self.assertTrue(all(row.status == "confirmed" for row in history))
        self.assertIn("create_escrow", {row.function for row in history})

    def test_product_listing_pins_image_then_metadata(self):
        product_id = self._list_product()
        product = asyncio.run(self.queries.get_product(product_id=product_id))

        self.assertEqual(self.pinning.uploads, [("file", "coffee.png"), ("json", "Coffee")])
        self.assertEqual(product.metadata_ipfs, "bafy-meta")
        self.assertEqual(product.image_ipfs, "bafy-image")
        self.assertEqual(product.creator, self.seller.address)

        user = asyncio.run(self.queries.get_user_account(address=self.seller.address))
        self.assertEqual(user.products_created, 1)
        self.assertEqual(user.email_hash, hash_email("seller@example.com"))
        self.assertEqual([p.id for p in asyncio.run(self.queries.get_user_products(address=self.seller.address))], [product_id])

    def test_escrow_is_shared_and_listed_for_every_party(self):
        product_id = self._list_product()
        self.chain.fund(self.buyer.address, 10 * MIST_PER_SUI)
        escrow_id = self._open_escrow(product_id)

        raw = asyncio.run(self.queries.get_object(object_id=escrow_id))
        self.assertIn("Shared", raw["data"]["owner"])
        owned = asyncio.run(
            self.queries.get_owned_objects(
                address=self.buyer.address,
                struct_type=self.queries.struct_type("EscrowContract"),
            )
        )
        self.assertEqual(owned.objects, [])

        for party in (self.buyer.address, self.seller.address, ARBITER):
            escrows = asyncio.run(self.queries.get_escrow_contracts(address=party))
            self.assertEqual([escrow.id for escrow in escrows], [escrow_id])
        self.assertEqual(asyncio.run(self.queries.get_escrow_contracts(address="0x" + "e" * 64)), [])

        # The seller mutates the shared escrow without owning it.
        asyncio.run(self.escrows.accept_escrow(escrow_id=escrow_id, signer=self.seller))
        seller_view = asyncio.run(self.queries.get_escrow_contracts(address=self.seller.address))
        self.assertEqual(seller_view[0].state, EscrowState.ACCEPTED)

    def test_completing_a_pending_escrow_is_rejected(self):
        product_id = self._list_product()
        self.chain.fund(self.buyer.address, 10 * MIST_PER_SUI)
        escrow_id = self._open_escrow(product_id)

        with self.assertRaises(RejectedError) as ctx:
            asyncio.run(self.escrows.complete_escrow(CompleteEscrowInput(escrow_id=escrow_id), signer=self.buyer))
        self.assertIn("EInvalidState", ctx.exception.reason)
        self.assertIsNotNone(ctx.exception.tx_hash)
        self.assertEqual(asyncio.run(self.queries.get_escrow(escrow_id=escrow_id)).state, EscrowState.PENDING)

        failed = [row for row in self.ledger.list_for_address(address=self.buyer.address) if row.status == "failed"]
        self.assertEqual(len(failed), 1)
        self.assertEqual(failed[0].function, "complete_escrow")

    def test_second_dispute_is_rejected(self):
        product_id = self._list_product()
        self.chain.fund(self.buyer.address, 10 * MIST_PER_SUI)
        escrow_id = self._open_escrow(product_id)
        asyncio.run(self.escrows.accept_escrow(escrow_id=escrow_id, signer=self.seller))

        asyncio.run(self.escrows.dispute_escrow(escrow_id=escrow_id, signer=self.buyer))
        with self.assertRaises(RejectedError):
            asyncio.run(self.escrows.dispute_escrow(escrow_id=escrow_id, signer=self.seller))
        self.assertEqual(asyncio.run(self.queries.get_escrow(escrow_id=escrow_id)).state, EscrowState.DISPUTED)

    def test_only_the_seller_can_accept_and_cancel_refunds_the_buyer(self):
        product_id = self._list_product()
        self.chain.fund(self.buyer.address, 10 * MIST_PER_SUI)
        escrow_id = self._open_escrow(product_id)

        with self.assertRaises(RejectedError) as ctx:
            asyncio.run(self.escrows.accept_escrow(escrow_id=escrow_id, signer=self.buyer))
        self.assertIn("ENotSeller", ctx.exception.reason)

        asyncio.run(self.escrows.cancel_escrow(escrow_id=escrow_id, signer=self.buyer))
        self.assertEqual(asyncio.run(self.queries.get_escrow(escrow_id=escrow_id)).state, EscrowState.CANCELLED)
        self.assertEqual(asyncio.run(self.queries.get_balance(address=self.buyer.address)), 10 * MIST_PER_SUI)

    def test_escrow_without_funds_aborts_and_restores_state(self):
        product_id = self._list_product()
        with self.assertRaises(RejectedError) as ctx:
            self._open_escrow(product_id)
        self.assertIn("EInsufficientBalance", ctx.exception.reason)
        self.assertEqual(asyncio.run(self.queries.get_escrow_contracts(address=self.buyer.address)), [])

    def test_signature_past_max_epoch_is_rejected(self):
        product_id = self._list_product()
        self.chain.fund(self.buyer.address, 10 * MIST_PER_SUI)
        self.chain.advance_epoch(11)
        with self.assertRaises(RejectedError) as ctx:
            self._open_escrow(product_id)
        self.assertIn("max epoch", ctx.exception.reason)

    def test_resubmitting_the_same_call_replays_the_original_result(self):
        product_id = self._list_product()
        self.chain.fund(self.buyer.address, 10 * MIST_PER_SUI)
        executor = TransactionExecutor(chain_rpc=self.chain, ledger=self.ledger)
        call = self.builder.create_escrow(
            seller=self.seller.address,
            arbiter=ARBITER,
            product_id=product_id,
            amount=MIST_PER_SUI,
            terms="",
        )

        first = asyncio.run(executor.execute(call, signer=self.buyer))
        second = asyncio.run(executor.execute(call, signer=self.buyer))

        self.assertEqual(first.digest, second.digest)
        self.assertEqual(first.transaction.escrow_id, second.transaction.escrow_id)
        self.assertEqual(asyncio.run(self.queries.get_balance(address=self.buyer.address)), 9 * MIST_PER_SUI)

    def test_subscription_upgrade_and_product_verification(self):
        product_id = self._list_product()
        account = asyncio.run(self.queries.get_owned_objects(
            address=self.seller.address,
            struct_type=self.queries.struct_type("UserAccount"),
        ))
        account_id = account.objects[0]["data"]["objectId"]
        self.chain.fund(self.seller.address, 600 * MIST_PER_SUI)

        asyncio.run(
            self.accounts.upgrade_subscription(
                UpgradeSubscriptionInput(account_id=account_id, tier=1),
                signer=self.seller,
            )
        )
        user = asyncio.run(self.queries.get_user_account(address=self.seller.address))
        self.assertEqual(user.subscription_tier, 1)
        self.assertGreater(user.subscription_expires, self.clock["ms"])
        self.assertEqual(asyncio.run(self.queries.get_balance(address=self.seller.address)), 100 * MIST_PER_SUI)

        asyncio.run(self.products.verify_product(product_id=product_id, signer=self.buyer))
        product = asyncio.run(self.queries.get_product(product_id=product_id))
        self.assertTrue(product.is_verified)
        self.assertEqual(product.verification_count, 1)

    def _product_input(self, **overrides) -> CreateProductInput:
        payload = {
            "account_id": "0x1",
            "name": "Thing",
            "description": "",
            "category": "Agriculture",
            "quantity": 1,
            "unit_price": 1,
            "currency": "SUI",
            "manufacturer": "",
            "origin_location": "",
            "batch_number": "",
            "image": ProductImage(content=b"\x89PNG", filename="thing.png", content_type="image/png"),
        }
        payload.update(overrides)
        return CreateProductInput(**payload)

    def test_invalid_input_never_reaches_the_chain(self):
        with self.assertRaises(InvalidCallArgumentError):
            asyncio.run(self.accounts.create_account(CreateAccountInput(email="nope"), signer=self.seller))
        for overrides in (
            {"category": "Weapons"},
            {"quantity": 0},
            {"account_id": "not-an-object-id"},
            {"name": "   "},
        ):
            with self.assertRaises(InvalidCallArgumentError):
                asyncio.run(self.products.create_product(self._product_input(**overrides), signer=self.seller))
        self.assertEqual(self.pinning.uploads, [])
        self.assertEqual(self.ledger.list_for_address(address=self.seller.address), [])

    def test_rejected_product_listing_releases_its_pins(self):
        with self.assertRaises(RejectedError) as ctx:
            asyncio.run(
                self.products.create_product(
                    self._product_input(account_id="0x" + "d" * 64),
                    signer=self.seller,
                )
            )
        self.assertIn("EUserAccountNotFound", ctx.exception.reason)
        self.assertEqual(self.pinning.uploads, [("file", "thing.png"), ("json", "Thing")])
        self.assertEqual(self.pinning.unpinned, ["bafy-image", "bafy-meta"])

    def test_tiers_are_listed_in_id_order(self):
        self.assertEqual([tier.code for tier in self.accounts.list_tiers()], ["starter", "professional", "enterprise"])


if __name__ == "__main__":
    unittest.main()
