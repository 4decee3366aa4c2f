"""
Main FastAPI application - Contabilidad automática de operaciones de circulante.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from trade_accounting.api.routers import discount_operations, factoring, remittances, trade_finance
from trade_accounting.core.config import get_settings
from trade_accounting.core.logging_config import configure_logging
from trade_accounting.domain.exceptions import (
    EffectAlreadyAssigned,
    EffectNotFound,
    InvalidRemittanceTransition,
    RemittanceNotFound,
)
from trade_accounting.infrastructure.database import init_db, seed_default_templates

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifespan - startup and shutdown events."""
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_format)
    init_db()
    seed_default_templates()
    logger.info("app.started", database_url=settings.database_url.split("@")[-1])
    yield


app = FastAPI(
    title="Trade Finance Accounting API",
    description="""
## Contabilidad automática de circulante (PGC 2007)

### Tipos de operación:
- **Descuento comercial**: remesas de efectos, intereses y comisiones
- **Factoring**: cesión de facturas, anticipo y control de límite
- **Confirming**: pago a proveedores

### Principios:
- Cada asiento cumple Debe = Haber (tolerancia de un céntimo)
- Configuración de usuario > plantilla por defecto > asiento estándar
- Un efecto solo puede pertenecer a una remesa abierta
    """,
    version="0.1.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(trade_finance.router)
app.include_router(discount_operations.router)
app.include_router(remittances.router)
app.include_router(factoring.router)


@app.get("/")
def root():
    return {
        "name": "Trade Finance Accounting API",
        "version": "0.1.0",
        "chart_of_accounts": "PGC 2007",
        "docs": "/docs"
    }


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "database": "connected"}


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    """Handle validation errors."""
    return JSONResponse(
        status_code=400,
        content={"detail": str(exc)}
    )


@app.exception_handler(EffectAlreadyAssigned)
async def effect_assigned_handler(request: Request, exc: EffectAlreadyAssigned):
    return JSONResponse(
        status_code=409,
        content={"detail": str(exc), "effect_ids": exc.effect_ids}
    )


@app.exception_handler(InvalidRemittanceTransition)
async def remittance_transition_handler(request: Request, exc: InvalidRemittanceTransition):
    return JSONResponse(
        status_code=409,
        content={"detail": str(exc), "current": exc.current, "target": exc.target}
    )


@app.exception_handler(EffectNotFound)
@app.exception_handler(RemittanceNotFound)
async def not_found_handler(request: Request, exc: ValueError):
    return JSONResponse(
        status_code=404,
        content={"detail": str(exc)}
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
