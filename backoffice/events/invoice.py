"""
Back Office — Invoice dispatch after a captured payment

Renders the PDF and mails it to the customer. Runs in the request but never
fails it: every error is logged and reported as False.
"""
import logging

from starlette.concurrency import run_in_threadpool

from backoffice.integrations.invoice_pdf import InvoiceRenderer
from backoffice.integrations.mailer import Mailer
from backoffice.models.order import Order

logger = logging.getLogger(__name__)


class InvoiceDispatcher:
    def __init__(self, renderer: InvoiceRenderer, mailer: Mailer):
        self.renderer = renderer
        self.mailer = mailer

    async def send(self, order: Order) -> bool:
        if not order.customer_email:
            logger.warning("Order %s has no customer e-mail, invoice not sent", order.order_number)
            return False
        try:
            pdf = await run_in_threadpool(self.renderer.render, order)
            await self.mailer.send_order_confirmation(order, pdf)
        except Exception:
            logger.exception("Invoice dispatch failed for order %s", order.order_number)
            return False
        logger.info("Invoice for order %s sent to %s", order.order_number, order.customer_email)
        return True
