import stripe
from flask import Blueprint, request, jsonify, current_app

from models import db
from models.payment import Payment
from utils.audit import log_event

webhook_bp = Blueprint("webhook", __name__, url_prefix="/webhooks")


def _find_payment(session: dict):
    meta = session.get("metadata", {}) or {}
    payment_id = meta.get("payment_id")
    if payment_id and str(payment_id).isdigit():
        payment = db.session.get(Payment, int(payment_id))
        if payment:
            return payment
    session_id = session.get("id")
    if session_id:
        return Payment.query.filter_by(stripe_session_id=session_id).first()
    return None


@webhook_bp.post("/stripe")
def stripe_webhook():
    endpoint_secret = current_app.config.get("STRIPE_WEBHOOK_SECRET")
    if not endpoint_secret:
        return jsonify(error="Webhook secret not configured"), 500

    try:
        event = stripe.Webhook.construct_event(
            request.data, request.headers.get("Stripe-Signature"), endpoint_secret
        )
    except (ValueError, stripe.SignatureVerificationError):
        return jsonify(error="Invalid webhook signature"), 400

    event_type = event.get("type")
    if event_type not in ("checkout.session.completed", "checkout.session.expired"):
        return jsonify(received=True), 200

    session = event["data"]["object"]
    payment = _find_payment(session)
    if not payment or payment.is_paid:
        return jsonify(received=True), 200

    # payment state only; booking status is owned by the lifecycle manager
    if event_type == "checkout.session.completed":
        payment.mark_paid()
        action = "PAYMENT_PAID"
    else:
        payment.mark_failed()
        action = "PAYMENT_EXPIRED"
    db.session.commit()

    log_event(action, entity="payment", entity_id=payment.id, metadata={"stripe_session_id": session.get("id"), "booking_id": payment.booking_id})
    return jsonify(received=True), 200
