"""
Back Office — Route dependencies: identity, role checks and service wiring
"""
from functools import lru_cache

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.config import get_settings
from backoffice.core.exceptions import Forbidden
from backoffice.core.security import Identity, TokenService
from backoffice.db.database import get_db
from backoffice.events.invoice import InvoiceDispatcher
from backoffice.integrations.invoice_pdf import InvoiceRenderer
from backoffice.integrations.mailer import Mailer
from backoffice.integrations.paypal import PayPalClient
from backoffice.integrations.storage import ImageStorage
from backoffice.models.user import Role
from backoffice.services.audit_service import AuditService, RequestMeta
from backoffice.services.catalog_service import CatalogService
from backoffice.services.category_service import CategoryService
from backoffice.services.dashboard_service import DashboardService
from backoffice.services.loyalty_service import LoyaltyService
from backoffice.services.order_service import OrderService
from backoffice.services.product_service import ProductService
from backoffice.services.sale_service import SaleService
from backoffice.services.supplier_service import SupplierService
from backoffice.services.user_service import UserService

settings = get_settings()

STAFF = (Role.ADMIN, Role.EMPLOYEE)
ANY_ROLE = (Role.ADMIN, Role.EMPLOYEE, Role.CLIENT)


# ─── Identity & authorization ─────────────────────────────────────────────────

def current_identity(request: Request) -> Identity | None:
    """Whatever JWTAuthMiddleware resolved; None for anonymous callers."""
    return getattr(request.state, "identity", None)


def require_roles(*roles: Role):
    """Allow the route when the caller holds any one of `roles`."""
    allowed = tuple(role.value for role in roles)

    async def dependency(identity: Identity | None = Depends(current_identity)) -> Identity:
        if identity is None:
            raise Forbidden("Authentication required.")
        if not identity.has_any_role(*allowed):
            raise Forbidden("You do not have permission to perform this action.")
        return identity

    return dependency


def request_meta(request: Request) -> RequestMeta:
    forwarded = request.headers.get("X-Forwarded-For")
    ip = forwarded.split(",")[0].strip() if forwarded else (request.client.host if request.client else None)
    return RequestMeta(ip_address=ip, user_agent=request.headers.get("User-Agent"))


# ─── Integrations ─────────────────────────────────────────────────────────────

@lru_cache()
def get_token_service() -> TokenService:
    return TokenService(settings)


@lru_cache()
def get_mailer() -> Mailer:
    return Mailer(settings)


@lru_cache()
def get_payment_client() -> PayPalClient | None:
    if not settings.PAYPAL_CLIENT_ID:
        return None
    return PayPalClient(settings)


@lru_cache()
def get_image_storage() -> ImageStorage:
    return ImageStorage.from_settings(settings)


@lru_cache()
def get_invoice_renderer() -> InvoiceRenderer:
    return InvoiceRenderer(settings)


def get_invoice_dispatcher(
    renderer: InvoiceRenderer = Depends(get_invoice_renderer),
    mailer: Mailer = Depends(get_mailer),
) -> InvoiceDispatcher:
    return InvoiceDispatcher(renderer, mailer)


# ─── Services ─────────────────────────────────────────────────────────────────

def get_audit(db: AsyncSession = Depends(get_db), meta: RequestMeta = Depends(request_meta)) -> AuditService:
    return AuditService(db, meta)


def get_category_service(db: AsyncSession = Depends(get_db), audit: AuditService = Depends(get_audit)):
    return CategoryService(db, audit)


def get_supplier_service(db: AsyncSession = Depends(get_db), audit: AuditService = Depends(get_audit)):
    return SupplierService(db, audit)


def get_product_service(db: AsyncSession = Depends(get_db), audit: AuditService = Depends(get_audit)):
    return ProductService(db, audit)


def get_catalog_service(db: AsyncSession = Depends(get_db)):
    return CatalogService(db)


def get_order_service(
    db: AsyncSession = Depends(get_db),
    audit: AuditService = Depends(get_audit),
    payments: PayPalClient | None = Depends(get_payment_client),
):
    return OrderService(db, audit, payments, settings)


def get_sale_service(db: AsyncSession = Depends(get_db), audit: AuditService = Depends(get_audit)):
    return SaleService(db, audit, settings)


def get_loyalty_service(db: AsyncSession = Depends(get_db)):
    return LoyaltyService(db)


def get_user_service(
    db: AsyncSession = Depends(get_db),
    audit: AuditService = Depends(get_audit),
    mailer: Mailer = Depends(get_mailer),
):
    return UserService(db, audit, mailer, settings)


def get_dashboard_service(db: AsyncSession = Depends(get_db)):
    return DashboardService(db)
