from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from thalexa.api.routers.accounts import router as accounts_router
from thalexa.api.routers.escrow import router as escrow_router
from thalexa.api.routers.products import router as products_router
from thalexa.api.routers.zklogin import router as zklogin_router
from thalexa.shared.config import get_settings


settings = get_settings()
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)

app = FastAPI(title="Thalexa API")
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins or ["*"],
    allow_credentials=bool(settings.cors_origins),
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(zklogin_router)
app.include_router(accounts_router)
app.include_router(products_router)
app.include_router(escrow_router)


@app.get("/health")
def health():
    return {"status": "ok", "network": settings.sui_network, "chain_backend": settings.chain_backend}
