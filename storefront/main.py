from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from datetime import date
from typing import Annotated, Optional

from fastapi import Depends, FastAPI, Header, Path, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .analytics import OrderFilter
from .cart import JsonCartStore
from .checkout import CheckoutStep
from .config import Settings, get_settings
from .database import (
    MongoCatalogRepository,
    MongoCategoryRepository,
    MongoCouponRepository,
    MongoOrderRepository,
    MongoSiteSettingsRepository,
    get_db,
)
from .errors import (
    CartLineNotFound,
    InvalidCoupon,
    InvalidTransition,
    OutOfStock,
    ProductNotFound,
    StorefrontError,
    Unauthorized,
    ValidationFailure,
)
from .notifications import WhatsAppDispatcher, whatsapp_link
from .schemas import CamelModel, CheckoutForm, Coupon, ProductDraft
from .store import Storefront

logger = logging.getLogger(__name__)

SessionId = Annotated[str, Path(pattern=r"^[A-Za-z0-9_-]{1,64}$")]

STATUS_CODES = {
    OutOfStock: 409,
    InvalidTransition: 409,
    InvalidCoupon: 404,
    CartLineNotFound: 404,
    ProductNotFound: 404,
    ValidationFailure: 422,
    Unauthorized: 401,
}


# Request bodies

class AddLineIn(CamelModel):
    product_id: str
    color: str
    size: str


class CouponIn(BaseModel):
    code: str


class LoginIn(BaseModel):
    password: str


class StockIn(BaseModel):
    color: str
    size: str
    quantity: int = Field(ge=0)


class CategoryIn(BaseModel):
    label: str


class SiteSettingsIn(CamelModel):
    collection_title: str


class CheckoutView(CamelModel):
    step: CheckoutStep
    form: CheckoutForm


class SubmittedView(CamelModel):
    step: CheckoutStep
    order: dict
    message: str
    whatsapp_url: str


def build_storefront(settings: Settings) -> Storefront:
    return Storefront(
        products=MongoCatalogRepository(),
        orders=MongoOrderRepository(),
        coupons=MongoCouponRepository(),
        categories=MongoCategoryRepository(),
        site_settings=MongoSiteSettingsRepository(),
        dispatcher=WhatsAppDispatcher(),
        cart_store_factory=lambda session_id: JsonCartStore(settings.CART_STORAGE_DIR / f"{session_id}.json"),
        settings=settings,
    )


def create_app(storefront: Optional[Storefront] = None, settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    storefront = storefront or build_storefront(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await storefront.load()
        yield

    app = FastAPI(title="Storefront API", lifespan=lifespan)
    app.state.storefront = storefront

    # Allow all origins for the storefront client
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(StorefrontError)
    async def storefront_error(request: Request, exc: StorefrontError):
        status = next((code for cls, code in STATUS_CODES.items() if isinstance(exc, cls)), 400)
        return JSONResponse(status_code=status, content={"detail": str(exc)})

    def require_admin(x_admin_password: str = Header("")) -> None:
        if x_admin_password != settings.ADMIN_PASSWORD:
            raise Unauthorized("Incorrect admin password")

    @app.get("/")
    async def root():
        return {"message": "Storefront Backend Running"}

    @app.get("/test")
    async def test():
        try:
            db = await get_db()
            colls = []
            try:
                colls = await db.list_collection_names()
                status = "✅ Connected & Working"
            except Exception as e:
                status = f"⚠️ Connected but Error: {str(e)[:80]}"
            return {
                "backend": "✅ Running",
                "database": status,
                "database_url": "✅ Set" if os.getenv("DATABASE_URL") else "❌ Not Set",
                "database_name": db.name,
                "collections": colls,
            }
        except Exception as e:
            return {"backend": "Error", "error": str(e)}

    @app.post("/seed", dependencies=[Depends(require_admin)])
    async def seed():
        inserted = await storefront.seed()
        return {"seeded": inserted > 0, "count": inserted}

    # Catalog

    @app.get("/products")
    async def list_products(category: Optional[str] = Query(None), q: Optional[str] = Query(None)):
        return storefront.catalog.browse(category, q)

    @app.get("/products/promotions")
    async def list_promotions():
        return storefront.catalog.promotions()

    @app.get("/products/{product_id}")
    async def get_product(product_id: str):
        return storefront.visible_product(product_id)

    @app.get("/categories")
    async def list_categories():
        return storefront.categories.listing()

    @app.get("/settings")
    async def get_site_settings():
        return storefront.site_settings.current

    # Cart

    @app.get("/sessions/{session_id}/cart")
    async def get_cart(session_id: SessionId):
        return storefront.session(session_id).view()

    @app.post("/sessions/{session_id}/cart/lines", status_code=201)
    async def add_line(payload: AddLineIn, session_id: SessionId):
        storefront.add_to_cart(session_id, payload.product_id, payload.color, payload.size)
        return storefront.session(session_id).view()

    @app.delete("/sessions/{session_id}/cart/lines/{index}")
    async def remove_line(index: int, session_id: SessionId):
        storefront.remove_from_cart(session_id, index)
        return storefront.session(session_id).view()

    @app.post("/sessions/{session_id}/cart/coupon")
    async def apply_coupon(payload: CouponIn, session_id: SessionId):
        storefront.apply_coupon(session_id, payload.code)
        return storefront.session(session_id).view()

    @app.delete("/sessions/{session_id}/cart/coupon")
    async def remove_coupon(session_id: SessionId):
        storefront.remove_coupon(session_id)
        return storefront.session(session_id).view()

    # Checkout

    def checkout_view(session_id: str) -> CheckoutView:
        checkout = storefront.session(session_id).checkout
        return CheckoutView(step=checkout.step, form=checkout.form)

    @app.get("/sessions/{session_id}/checkout")
    async def get_checkout(session_id: SessionId):
        return checkout_view(session_id)

    @app.post("/sessions/{session_id}/checkout/next")
    async def checkout_next(payload: CheckoutForm, session_id: SessionId):
        checkout = storefront.session(session_id).checkout
        checkout.update(**payload.model_dump(exclude_defaults=True))
        receipt = await checkout.advance()
        if receipt is None:
            return checkout_view(session_id)
        return SubmittedView(
            step=CheckoutStep.SUBMITTED,
            order=receipt.order.model_dump(mode="json", by_alias=True),
            message=receipt.message,
            whatsapp_url=whatsapp_link(settings.NOTIFY_DESTINATION, receipt.message),
        )

    @app.post("/sessions/{session_id}/checkout/back")
    async def checkout_back(session_id: SessionId):
        storefront.session(session_id).checkout.back()
        return checkout_view(session_id)

    @app.post("/sessions/{session_id}/checkout/cancel")
    async def checkout_cancel(session_id: SessionId):
        storefront.session(session_id).checkout.cancel()
        return checkout_view(session_id)

    # Operator

    @app.post("/admin/login")
    async def admin_login(payload: LoginIn):
        if payload.password != settings.ADMIN_PASSWORD:
            raise Unauthorized("Incorrect admin password")
        return {"ok": True}

    @app.get("/admin/products", dependencies=[Depends(require_admin)])
    async def list_all_products():
        return storefront.catalog.all()

    @app.post("/admin/products", status_code=201, dependencies=[Depends(require_admin)])
    async def create_product(draft: ProductDraft):
        return storefront.admin.save_product(draft.model_copy(update={"id": None})).value

    @app.put("/admin/products/{product_id}", dependencies=[Depends(require_admin)])
    async def update_product(product_id: str, draft: ProductDraft):
        return storefront.admin.save_product(draft.model_copy(update={"id": product_id})).value

    @app.delete("/admin/products/{product_id}", dependencies=[Depends(require_admin)])
    async def delete_product(product_id: str):
        storefront.admin.delete_product(product_id)
        return {"deleted": product_id}

    @app.put("/admin/products/{product_id}/stock", dependencies=[Depends(require_admin)])
    async def set_stock(product_id: str, payload: StockIn):
        storefront.admin.set_stock(product_id, payload.color, payload.size, payload.quantity)
        return storefront.catalog.require(product_id)

    @app.get("/admin/coupons", dependencies=[Depends(require_admin)])
    async def list_coupons():
        return storefront.coupons.coupons

    @app.post("/admin/coupons", status_code=201, dependencies=[Depends(require_admin)])
    async def create_coupon(coupon: Coupon):
        return storefront.coupons.add(coupon).value

    @app.delete("/admin/coupons/{code}", dependencies=[Depends(require_admin)])
    async def delete_coupon(code: str):
        storefront.coupons.remove(code)
        return {"deleted": code.upper()}

    @app.post("/admin/categories", status_code=201, dependencies=[Depends(require_admin)])
    async def create_category(payload: CategoryIn):
        return storefront.categories.add(payload.label).value

    @app.delete("/admin/categories/{category_id}", dependencies=[Depends(require_admin)])
    async def delete_category(category_id: str):
        storefront.categories.remove(category_id)
        return {"deleted": category_id}

    @app.put("/admin/settings", dependencies=[Depends(require_admin)])
    async def update_site_settings(payload: SiteSettingsIn):
        return storefront.site_settings.update(payload.collection_title).value

    @app.get("/admin/sales", dependencies=[Depends(require_admin)])
    async def sales(
        start: Optional[date] = Query(None),
        end: Optional[date] = Query(None),
        q: str = Query(""),
    ):
        return await storefront.sales(OrderFilter(start=start, end=end, search=q))

    @app.get("/admin/inventory", dependencies=[Depends(require_admin)])
    async def inventory():
        return storefront.inventory()

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", 8000)))
