from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from marketplace.api.deps import get_notifier
from marketplace.api.routers import invoices_router, orders_router, sellers_router
from marketplace.core.config import get_settings
from marketplace.core.logging import setup_logging

settings = get_settings()
setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # the notifier is created lazily on the first request
    if get_notifier.cache_info().currsize:
        await get_notifier().close()


app = FastAPI(title=settings.PROJECT_NAME, version=settings.VERSION, lifespan=lifespan)

origins = [
    settings.FRONTEND_URL,
    "http://127.0.0.1:3000",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(orders_router.router, prefix=settings.API_V1_STR, tags=["orders"])
app.include_router(invoices_router.router, prefix=settings.API_V1_STR, tags=["invoices"])
app.include_router(sellers_router.router, prefix=settings.API_V1_STR, tags=["sellers"])

@app.get("/", tags=["Root"])
async def read_root():
    return {"message": f"Welcome to the {settings.PROJECT_NAME}"}

if __name__ == "__main__":
    uvicorn.run("marketplace.server:app", host="0.0.0.0", port=8000, reload=True)
