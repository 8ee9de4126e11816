import logging
from fastapi import FastAPI
import uvicorn
from fastapi.middleware.cors import CORSMiddleware
from db.database import create_db_and_tables
from routers.categories import router as categories_router
from routers.inventory import router as inventory_router
from routers.members import router as members_router
from routers.orders import router as orders_router
from routers.reports import router as reports_router
from routers.settings import router as settings_router
from routers.transactions import router as transactions_router
from routers.users import router as operators_router
from core.auth import fastapi_users, auth_backend
from core.config import settings
from contextlib import asynccontextmanager
from schemas.users import UserRead, UserCreate, UserUpdate

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await create_db_and_tables()
    yield


app = FastAPI(
    title="Dispensary PoS API",
    description="Point of sale API: members, inventory, pickup orders and checkout",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Authentication routes (fastapi-users)
app.include_router(fastapi_users.get_auth_router(auth_backend), prefix="/auth/jwt", tags=["auth"],)
app.include_router(fastapi_users.get_register_router(UserRead, UserCreate), prefix="/auth", tags=["auth"])
app.include_router(fastapi_users.get_reset_password_router(), prefix="/auth", tags=["auth"])
app.include_router(fastapi_users.get_verify_router(UserRead), prefix="/auth", tags=["auth"])
app.include_router(fastapi_users.get_users_router(UserRead, UserUpdate), prefix="/users", tags=["users"])
app.include_router(operators_router, prefix="/operators", tags=["users"])

# Store setup
app.include_router(categories_router, prefix="/categories", tags=["categories"])
app.include_router(inventory_router, prefix="/inventory", tags=["inventory"])
app.include_router(members_router, prefix="/members", tags=["members"])
app.include_router(settings_router, prefix="/settings", tags=["settings"])

# Point of sale
app.include_router(orders_router, prefix="/orders", tags=["orders"])
app.include_router(transactions_router, prefix="/transactions", tags=["transactions"])
app.include_router(reports_router, prefix="/reports", tags=["reports"])

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
