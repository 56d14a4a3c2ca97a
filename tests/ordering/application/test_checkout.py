"""Application tests for checkout — the atomic order placement unit of work."""

import base64

import pytest
from ordering.checkout.payment import PaymentStatus
from ordering.checkout.service import CheckoutRequest
from ordering.errors import (
    CouponBelowMinimum,
    CouponNotFound,
    InsufficientPoints,
    PaymentError,
    PreviewUploadFailed,
    StockUnavailable,
)
from ordering.order.lookup import find_order_by_number
from ordering.order.order import OrderStatus
from ordering.rewards.account import LoyaltyAccount
from payments.gateway.port import payment_intent_id
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain


def _spend_elsewhere(uid: str, points: int) -> None:
    repo = current_domain.repository_for(LoyaltyAccount)
    account = repo.get(uid)
    account.redeem(points)
    repo.add(account)


class TestQuote:
    def test_prices_lines_and_total(self, service, line):
        quote = service.quote([line(charms=["moon", "star"]), line("br-jonc", "bracelet")])

        assert quote.line_prices == pytest.approx([17.90, 9.90])
        assert quote.subtotal == pytest.approx(27.80)
        assert quote.total == pytest.approx(27.80)
        assert not quote.is_free

    def test_coupon_and_points(self, service, seed, line):
        seed.coupon("BIENVENUE10", "percentage", 10)
        seed.user("buyer", reward_points=400)

        quote = service.quote(
            [line(charms=["moon"] * 6)], coupon_code="bienvenue10", points_requested=100, user_id="buyer"
        )

        # 9.90 + 5 * 4.00 + 2.50 = 32.40; -3.24; -10.00
        assert quote.subtotal == pytest.approx(32.40)
        assert quote.coupon_discount == pytest.approx(3.24)
        assert quote.points.points == 100
        assert quote.total == pytest.approx(19.16)
        assert quote.to_dict()["coupon_code"] == "BIENVENUE10"

    def test_points_capped_at_remaining_total(self, service, seed, line):
        seed.user("buyer", reward_points=1000)
        quote = service.quote([line()], points_requested=1000, user_id="buyer")

        assert quote.points.points == 99
        assert quote.total == 0.0
        assert quote.is_free

    def test_insufficient_points(self, service, seed, line):
        seed.user("buyer", reward_points=20)
        with pytest.raises(InsufficientPoints) as exc:
            service.quote([line()], points_requested=50, user_id="buyer")
        assert exc.value.balance == 20

    def test_unknown_buyer(self, service, line):
        with pytest.raises(ObjectNotFoundError):
            service.quote([line()], points_requested=10, user_id="ghost")

    def test_points_need_a_user(self, service, line):
        with pytest.raises(ValidationError) as exc:
            service.quote([line()], points_requested=10)
        assert "points_requested" in exc.value.messages

    def test_unknown_coupon(self, service, line):
        with pytest.raises(CouponNotFound):
            service.quote([line()], coupon_code="NOPE")


class TestPaymentIntent:
    def test_paid_quote_opens_intent(self, service, gateway, seed, line):
        intent = service.create_payment_intent(service.quote([line()]), "camille@example.com")

        assert "_secret_" in intent.payment_reference
        assert intent.amount == pytest.approx(9.90)
        assert gateway.calls[0]["amount"] == pytest.approx(9.90)

        payment = seed.payment(intent.payment_reference)
        assert payment.status == PaymentStatus.OPEN.value
        assert payment.amount == pytest.approx(9.90)
        assert payment.payer_email == "camille@example.com"

    def test_free_quote_skips_gateway(self, service, gateway, seed, line):
        seed.coupon("OFFERT", "percentage", 100)
        intent = service.create_payment_intent(service.quote([line()], coupon_code="OFFERT"), "c@example.com")

        assert intent.payment_reference == "free_order"
        assert gateway.calls == []

    def test_rejected_intent(self, service, gateway, line):
        gateway.configure(should_succeed=False, failure_reason="Card declined")
        with pytest.raises(PaymentError):
            service.create_payment_intent(service.quote([line()]), "c@example.com")


class TestPlaceOrder:
    def test_happy_path_persists_everything(self, place, seed, line, gateway, pay):
        cart = [
            line(
                charms=["moon", "star"],
                creator_id="creator-1",
                creator_name="Inès",
                creation_id="creation-1",
                creation_name="Nuit étoilée",
            ),
            line("br-jonc", "bracelet", charms=["moon"]),
        ]
        seed.stock_cart(cart, quantity=5)
        seed.user("creator-1", reward_points=0, email="ines@example.com", name="Inès")
        seed.creation("creation-1", sales_count=3)
        reference = pay(cart)

        order = place(cart, payment_reference=reference)

        assert order.status == OrderStatus.SUBMITTED.value
        assert order.total_price == pytest.approx(31.80)
        assert seed.quantity("necklace", "nk-chain") == 4
        assert seed.quantity("bracelet", "br-jonc") == 4
        assert seed.quantity("charms", "moon") == 3
        assert seed.quantity("charms", "star") == 4

        stored = seed.order(order.id)
        assert stored.order_number == order.order_number
        assert stored.ordered_items()[0].creation_name == "Nuit étoilée"
        assert find_order_by_number(order.order_number).id == order.id

        payment = seed.payment(reference)
        assert payment.status == PaymentStatus.CLAIMED.value
        assert payment.order_id == str(order.id)

        # 17.90 * 0.05 * 10 = 8.95 → 8
        assert seed.points("creator-1") == 8
        assert seed.sales("creation-1") == 4
        assert len(seed.mail_to("ines@example.com")) == 1

        [confirmation] = seed.mail_to("camille@example.com")
        assert confirmation.subject == f"Confirmation de votre commande n°{order.order_number}"
        assert gateway.refunded_references == []

    def test_pickup_order_has_no_address(self, place, seed, line, address):
        cart = [line()]
        seed.stock_cart(cart)
        order = place(cart, delivery_method="pickup", shipping_address=address)
        assert order.shipping_address is None

    def test_points_are_debited(self, place, seed, line):
        cart = [line(charms=["moon", "star"])]
        seed.stock_cart(cart)
        seed.user("buyer", reward_points=400)

        order = place(cart, points_requested=100, user_id="buyer")

        assert order.points_used == 100
        assert order.total_price == pytest.approx(7.90)
        assert seed.points("buyer") == 300

    def test_buyer_who_is_also_the_creator(self, place, seed, line):
        cart = [line(charms=["moon", "star"], creator_id="ines", creator_name="Inès")]
        seed.stock_cart(cart)
        seed.user("ines", reward_points=400, email="ines@example.com")

        order = place(cart, points_requested=100, user_id="ines")

        # 400 - 100 spent + 8 earned on 17.90
        assert order.points_used == 100
        assert seed.points("ines") == 308

    def test_coupon_is_recorded(self, place, seed, line):
        cart = [line(charms=["moon", "star"])]
        seed.stock_cart(cart)
        coupon_id = seed.coupon("ETE5", "fixed", 5)

        order = place(cart, coupon_code="ete5")

        assert order.coupon_code == "ETE5"
        assert order.coupon_id == coupon_id
        assert order.total_price == pytest.approx(12.90)

    def test_missing_creation_is_not_counted(self, place, seed, line):
        cart = [line(creation_id="deleted-creation")]
        seed.stock_cart(cart)
        place(cart)
        with pytest.raises(ObjectNotFoundError):
            seed.sales("deleted-creation")


class TestCheckoutFailures:
    def test_stock_shortage_writes_nothing(self, place, seed, line, gateway, pay):
        cart = [line(charms=["moon", "star"]), line("br-jonc", "bracelet")]
        seed.stock("necklace", "nk-chain", 5)
        seed.stock("charms", "moon", 5)
        seed.stock("charms", "star", 0)
        reference = pay(cart)

        with pytest.raises(StockUnavailable) as exc:
            place(cart, payment_reference=reference)

        assert exc.value.unavailable_model_ids == ["br-jonc"]
        assert exc.value.unavailable_charm_ids == ["star"]
        assert seed.quantity("necklace", "nk-chain") == 5
        assert seed.quantity("charms", "moon") == 5
        assert seed.orders() == []
        assert seed.mail() == []
        assert gateway.refunded_references == [payment_intent_id(reference)]
        assert seed.payment(reference).status == PaymentStatus.REFUNDED.value

    def test_insufficient_points_at_commit_time(self, place, seed, line, gateway, pay):
        cart = [line()]
        seed.stock_cart(cart, quantity=2)
        seed.user("buyer", reward_points=80)
        reference = pay(cart, points_requested=80, user_id="buyer")
        _spend_elsewhere("buyer", 30)

        with pytest.raises(InsufficientPoints):
            place(cart, points_requested=80, user_id="buyer", payment_reference=reference)

        assert seed.points("buyer") == 50
        assert seed.quantity("necklace", "nk-chain") == 2
        assert seed.orders() == []
        assert len(gateway.refunded_references) == 1

    def test_free_reference_requires_zero_total(self, place, seed, line, free_reference, gateway):
        cart = [line()]
        seed.stock_cart(cart)

        with pytest.raises(PaymentError):
            place(cart, payment_reference=free_reference)

        assert seed.orders() == []
        assert gateway.calls == []

    def test_free_order_with_full_coupon(self, place, seed, line, free_reference):
        cart = [line()]
        seed.stock_cart(cart)
        seed.coupon("OFFERT", "percentage", 100)

        order = place(cart, coupon_code="OFFERT", payment_reference=free_reference)

        assert order.total_price == 0.0
        assert not order.was_paid

    def test_coupon_below_minimum(self, place, seed, line, pay):
        cart = [line()]
        seed.stock_cart(cart)
        reference = pay(cart)
        seed.coupon("GROS", "fixed", 10, min_purchase=50)

        with pytest.raises(CouponBelowMinimum):
            place(cart, coupon_code="GROS", payment_reference=reference)
        assert seed.orders() == []

    @pytest.mark.parametrize(
        "overrides,field",
        [
            ({"customer_email": "not-an-email"}, "customer_email"),
            ({"delivery_method": "drone"}, "delivery_method"),
            ({"shipping_address": None}, "shipping_address"),
            ({"payment_reference": ""}, "payment_reference"),
        ],
    )
    def test_malformed_requests(self, place, seed, line, overrides, field):
        cart = [line()]
        seed.stock_cart(cart)

        with pytest.raises(ValidationError) as exc:
            place(cart, **overrides)

        assert field in exc.value.messages
        assert seed.quantity("necklace", "nk-chain") == 10

    def test_empty_cart(self, place):
        with pytest.raises(ValidationError):
            place([], payment_reference="pi_empty_secret_x")

    def test_failed_refund_still_raises_original_error(self, place, seed, line, gateway, pay):
        cart = [line()]
        reference = pay(cart)
        gateway.configure(should_succeed=False, failure_reason="Gateway down")

        with pytest.raises(StockUnavailable):
            place(cart, payment_reference=reference)

        assert gateway.refunded_references == []
        # Left open for a later refund or checkout
        assert seed.payment(reference).status == PaymentStatus.OPEN.value


class TestPaymentClaim:
    def test_a_payment_backs_a_single_order(self, place, seed, line, gateway, pay):
        cart = [line()]
        seed.stock_cart(cart, quantity=5)
        reference = pay(cart)
        first = place(cart, payment_reference=reference)

        with pytest.raises(PaymentError, match="already been used"):
            place(cart, payment_reference=reference)

        assert [order.id for order in seed.orders()] == [first.id]
        assert seed.quantity("necklace", "nk-chain") == 4
        assert gateway.refunded_references == []
        assert seed.payment(reference).order_id == str(first.id)

    def test_reused_payment_failing_on_stock_is_not_refunded(self, place, seed, line, gateway, pay):
        cart = [line()]
        seed.stock_cart(cart, quantity=1)
        reference = pay(cart)
        first = place(cart, payment_reference=reference)

        with pytest.raises(StockUnavailable):
            place(cart, payment_reference=reference)

        assert gateway.refunded_references == []
        assert seed.order(first.id).status == OrderStatus.SUBMITTED.value
        payment = seed.payment(reference)
        assert payment.status == PaymentStatus.CLAIMED.value
        assert payment.order_id == str(first.id)

    def test_payment_must_match_the_order_total(self, place, seed, line, gateway, pay):
        reference = pay([line()])
        cart = [line(charms=["moon", "star"])]
        seed.stock_cart(cart)

        with pytest.raises(PaymentError, match="does not cover"):
            place(cart, payment_reference=reference)

        assert seed.orders() == []
        assert seed.quantity("necklace", "nk-chain") == 10
        assert gateway.refunded_references == [payment_intent_id(reference)]
        assert seed.payment(reference).status == PaymentStatus.REFUNDED.value

    def test_unknown_payment_is_rejected_without_refund(self, place, seed, line, gateway):
        cart = [line()]
        seed.stock_cart(cart)

        with pytest.raises(PaymentError, match="Unknown payment reference"):
            place(cart, payment_reference="pi_forged_secret_abc")

        assert seed.orders() == []
        assert gateway.calls == []


class TestPreviewUpload:
    def test_inline_preview_is_uploaded(self, place, seed, line, blob_storage):
        payload = base64.b64encode(b"\x89PNG-preview").decode()
        cart = [line(preview_image=f"data:image/png;base64,{payload}")]
        seed.stock_cart(cart)

        order = place(cart)

        [(path, data)] = blob_storage.blobs.items()
        assert path.startswith("order-previews/") and path.endswith(".png")
        assert data == b"\x89PNG-preview"
        assert order.ordered_items()[0].preview_image.endswith(path)

    def test_preview_url_is_kept(self, place, seed, line, blob_storage):
        cart = [line(preview_image="https://cdn.test/p.png")]
        seed.stock_cart(cart)
        order = place(cart)
        assert order.ordered_items()[0].preview_image == "https://cdn.test/p.png"
        assert blob_storage.blobs == {}

    def test_upload_failure_aborts_checkout(self, place, seed, line, blob_storage):
        cart = [line(preview_image="data:image/png;base64,AAAA")]
        seed.stock_cart(cart)
        blob_storage.configure(should_succeed=False)

        with pytest.raises(PreviewUploadFailed):
            place(cart)
        assert seed.quantity("necklace", "nk-chain") == 10

    def test_corrupt_preview(self, place, seed, line):
        cart = [line(preview_image="data:image/png;base64,abc")]
        seed.stock_cart(cart)
        with pytest.raises(ValidationError):
            place(cart)


class TestCheckoutRequestDefaults:
    def test_defaults(self):
        request = CheckoutRequest(cart=[], customer_email="a@example.com", payment_reference="pi_1")
        assert request.delivery_method == "home"
        assert request.points_requested == 0
