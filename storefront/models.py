# models.py
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Boolean,
    DateTime,
    ForeignKey,
    Float,
    Numeric,
    JSON,
)
import datetime
import uuid

Base = declarative_base()


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


# A business owns zero or more shops; hiding it hides all of them
class Business(Base):
    __tablename__ = "businesses"
    id = Column(String, primary_key=True, default=new_id)
    name = Column(String, nullable=False)
    is_hidden = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    shops = relationship("Shop", back_populates="business")


class ShopCategory(Base):
    __tablename__ = "shop_categories"
    id = Column(String, primary_key=True, default=new_id)
    name = Column(String, nullable=False)
    name_ml = Column(String, nullable=True)
    image_url = Column(String, nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)


class ProductCategory(Base):
    __tablename__ = "product_categories"
    id = Column(String, primary_key=True, default=new_id)
    name = Column(String, nullable=False)
    name_ml = Column(String, nullable=True)
    image_url = Column(String, nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)


class ServiceCategory(Base):
    __tablename__ = "service_categories"
    id = Column(String, primary_key=True, default=new_id)
    name = Column(String, nullable=False)
    name_ml = Column(String, nullable=True)
    image_url = Column(String, nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)


class Shop(Base):
    __tablename__ = "shops"
    id = Column(String, primary_key=True, default=new_id)
    business_id = Column(String, ForeignKey("businesses.id"), nullable=True)
    category_id = Column(String, ForeignKey("shop_categories.id"), nullable=True)
    name = Column(String, nullable=False)
    name_ml = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    shop_type = Column(String, nullable=False, default="retail")  # retail/service/both
    is_hidden = Column(Boolean, nullable=False, default=False)
    is_verified = Column(Boolean, nullable=False, default=False)
    hidden_by_admin = Column(Boolean, nullable=False, default=False)
    phone_number = Column(String, nullable=True)
    whatsapp_number = Column(String, nullable=True)
    logo_url = Column(String, nullable=True)
    cover_image_url = Column(String, nullable=True)
    address_line1 = Column(String, nullable=True)
    city = Column(String, nullable=True)
    state = Column(String, nullable=True)
    district = Column(String, nullable=True)
    town = Column(String, nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    is_temporarily_closed = Column(Boolean, nullable=False, default=False)
    hide_shop_during_closure = Column(Boolean, nullable=False, default=False)
    closure_reason = Column(String, nullable=True)
    closure_end_date = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    business = relationship("Business", back_populates="shops")
    products = relationship("Product", back_populates="shop")
    services = relationship("Service", back_populates="shop")


class Product(Base):
    __tablename__ = "products"
    id = Column(String, primary_key=True, default=new_id)
    shop_id = Column(String, ForeignKey("shops.id"), nullable=False)
    category_id = Column(String, ForeignKey("product_categories.id"), nullable=True)
    name = Column(String, nullable=False)
    name_ml = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    description_ml = Column(Text, nullable=True)
    price = Column(Numeric(12, 2), nullable=False, default=0)
    mrp = Column(Numeric(12, 2), nullable=False, default=0)
    image_urls = Column(JSON, nullable=True)
    stock = Column(Integer, nullable=True)
    brand_name = Column(String, nullable=True)
    unit = Column(String, nullable=True)  # e.g., pcs, kg, bottle
    is_active = Column(Boolean, nullable=False, default=True)
    hidden_by_admin = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    shop = relationship("Shop", back_populates="products")


class Service(Base):
    __tablename__ = "services"
    id = Column(String, primary_key=True, default=new_id)
    shop_id = Column(String, ForeignKey("shops.id"), nullable=False)
    category_id = Column(String, ForeignKey("service_categories.id"), nullable=True)
    name = Column(String, nullable=False)
    name_ml = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    description_ml = Column(Text, nullable=True)
    price = Column(Numeric(12, 2), nullable=False, default=0)
    image_urls = Column(JSON, nullable=True)
    duration_minutes = Column(Integer, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    hidden_by_admin = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    shop = relationship("Shop", back_populates="services")


class Order(Base):
    __tablename__ = "orders"
    id = Column(String, primary_key=True, default=new_id)
    shop_id = Column(String, ForeignKey("shops.id"), nullable=False)
    user_id = Column(String, nullable=True, index=True)
    customer_name = Column(String, nullable=True)
    customer_phone = Column(String, nullable=True)
    customer_address = Column(String, nullable=True)
    status = Column(String, nullable=False, default="pending")  # pending/accepted/out_for_delivery/completed/cancelled
    total_amount = Column(Numeric(12, 2), nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    shop = relationship("Shop")
    items = relationship("OrderItem", back_populates="order")


class OrderItem(Base):
    __tablename__ = "order_items"
    id = Column(String, primary_key=True, default=new_id)
    order_id = Column(String, ForeignKey("orders.id"), nullable=False)
    product_id = Column(String, ForeignKey("products.id"), nullable=True)
    quantity = Column(Integer, nullable=False, default=1)
    total = Column(Numeric(12, 2), nullable=False, default=0)  # captured at order time

    order = relationship("Order", back_populates="items")
    product = relationship("Product")


class Bill(Base):
    __tablename__ = "bills"
    id = Column(String, primary_key=True, default=new_id)
    shop_id = Column(String, ForeignKey("shops.id"), nullable=True)
    user_id = Column(String, nullable=True, index=True)
    bill_number = Column(String, nullable=True)
    # soft link back to an order lives in meta["order_id"]
    meta = Column("metadata", JSON, nullable=True)
    customer_name = Column(String, nullable=True)
    customer_phone = Column(String, nullable=True)
    customer_address = Column(String, nullable=True)
    subtotal = Column(Numeric(12, 2), nullable=False, default=0)
    discount = Column(Numeric(12, 2), nullable=False, default=0)
    delivery_charge = Column(Numeric(12, 2), nullable=True)
    total = Column(Numeric(12, 2), nullable=False, default=0)
    paid_amount = Column(Numeric(12, 2), nullable=True)
    payment_status = Column(String, nullable=True)  # unpaid/partial/paid
    issued_at = Column(DateTime(timezone=True), default=utcnow)

    shop = relationship("Shop")
    items = relationship("BillItem", back_populates="bill")


class BillItem(Base):
    __tablename__ = "bill_items"
    id = Column(String, primary_key=True, default=new_id)
    bill_id = Column(String, ForeignKey("bills.id"), nullable=False)
    name = Column(String, nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    price = Column(Numeric(12, 2), nullable=False, default=0)
    total = Column(Numeric(12, 2), nullable=False, default=0)

    bill = relationship("Bill", back_populates="items")


class UserAddress(Base):
    __tablename__ = "user_addresses"
    id = Column(String, primary_key=True, default=new_id)
    user_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)  # e.g., Home, Work
    recipient_name = Column(String, nullable=False)
    phone_number = Column(String, nullable=False)
    house_no = Column(String, nullable=False)
    road_name = Column(String, nullable=False)
    landmark = Column(String, nullable=True)
    city = Column(String, nullable=False)
    state = Column(String, nullable=False)
    country = Column(String, nullable=False)
    pincode = Column(String, nullable=False)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    is_default = Column(Boolean, nullable=False, default=False)
    address_text = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)


class UserProfile(Base):
    __tablename__ = "user_profiles"
    id = Column(String, primary_key=True)  # same as the auth user id
    display_name = Column(String, nullable=True)
    phone_number = Column(String, nullable=True)
    avatar_url = Column(String, nullable=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


# Backend handle / session
class Backend:
    """Handle to the relational backend: an async engine, its session
    factory and the API key used for the backend's edge functions."""

    def __init__(self, engine, key=None):
        self.engine = engine
        self.key = key
        self.session = sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

    async def init_db(self):
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self):
        await self.engine.dispose()


def create_backend(url: str, key: str = None, echo: bool = False, **engine_options) -> Backend:
    if not url:
        raise ValueError("DATABASE_URL is required.")
    engine = create_async_engine(url, echo=echo, future=True, **engine_options)
    return Backend(engine, key)
