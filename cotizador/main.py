"""
Cotizador — Main Entry Point

Run one calculation from the command line:
    python -m cotizador --costo 10000 --ano-cotizacion 2023 --ano-en-curso 2025 \
        --eur-usd 1.08 --usd-clp 950 --perfil perfil.json

Run as an API server:
    python -m cotizador --serve
    # or: uvicorn cotizador.api:app --reload --port 8000

Or import and run programmatically:
    from cotizador.main import run
    result = run(10000, 2023, 2025, 1.08, 950, profile={...})
"""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any, Optional

from cotizador.config import get_settings
from cotizador.models.schemas import PricingRequest, PricingResult
from cotizador.pricing.cost_pipeline import compute_product_cost
from cotizador.services.currency_service import CurrencyService
from cotizador.utils.logger import setup_logging


def run(
    costo_fabrica_original_eur: float,
    ano_cotizacion: int,
    ano_en_curso: int,
    tipo_cambio_eur_usd_actual: float,
    tipo_cambio_usd_clp_actual: Optional[float] = None,
    profile: Optional[dict[str, Any]] = None,
) -> PricingResult:
    """Run one calculation; the USD/CLP rate is fetched when not given."""
    setup_logging(get_settings().log_level)
    logger = logging.getLogger(__name__)

    if tipo_cambio_usd_clp_actual is None:
        tipo_cambio_usd_clp_actual = CurrencyService().get_usd_clp_rate()
        logger.info(f"USD/CLP from currency webhook: {tipo_cambio_usd_clp_actual}")

    request = PricingRequest(
        ano_cotizacion=ano_cotizacion,
        ano_en_curso=ano_en_curso,
        costo_fabrica_original_eur=costo_fabrica_original_eur,
        tipo_cambio_eur_usd_actual=tipo_cambio_eur_usd_actual,
        tipo_cambio_usd_clp_actual=tipo_cambio_usd_clp_actual,
    )
    result = compute_product_cost(request, profile if profile is not None else {})
    _print_summary(result)
    return result


def _print_summary(result: PricingResult) -> None:
    """Log a human-readable summary of the calculation."""
    logger = logging.getLogger(__name__)

    if not result.ok:
        logger.error(f"Calculation failed: {result.error}")
        return

    c = result.calculados
    logger.info("-" * 60)
    logger.info("  CALCULATION SUMMARY")
    logger.info("-" * 60)
    logger.info(f"  Factory EXW (USD):     {c.costo_producto.costo_final_fabrica_usd_exw:,.2f}")
    logger.info(f"  CIF (USD):             {c.importacion.valor_cif_usd:,.2f}")
    logger.info(f"  Import VAT (USD):      {c.importacion.iva_importacion_usd:,.2f} (not in landed cost)")
    logger.info(f"  Landed cost (USD):     {c.landed_cost.precio_neto_compra_base_usd_landed_cost:,.2f}")
    logger.info(f"  Landed cost (CLP):     {c.conversion_margen.precio_neto_compra_base_clp:,.0f}")
    logger.info(f"  Net sale (CLP):        {c.precios_cliente.precio_neto_venta_final_clp:,.0f}")
    logger.info(f"  Total w/ VAT (CLP):    {c.precios_cliente.precio_venta_total_cliente_clp:,.0f}")
    logger.info("-" * 60)


def serve(host: str = "0.0.0.0", port: int = 8000) -> None:
    """Start the FastAPI server."""
    import uvicorn

    setup_logging(get_settings().log_level)
    logger = logging.getLogger(__name__)
    logger.info(f"Starting API server on {host}:{port}")
    uvicorn.run("cotizador.api:app", host=host, port=port, reload=get_settings().debug)


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="cotizador", description="Landed-cost calculator")
    parser.add_argument("--serve", action="store_true", help="start the API server")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--costo", type=float, help="factory cost in EUR")
    parser.add_argument("--ano-cotizacion", type=int)
    parser.add_argument("--ano-en-curso", type=int)
    parser.add_argument("--eur-usd", type=float, help="market EUR/USD rate")
    parser.add_argument("--usd-clp", type=float, help="market USD/CLP rate (fetched if omitted)")
    parser.add_argument("--perfil", type=Path, help="JSON file with the cost profile fields")
    args = parser.parse_args(argv)

    if args.serve:
        serve(port=args.port)
        return

    missing = [
        flag for flag, value in (
            ("--costo", args.costo),
            ("--ano-cotizacion", args.ano_cotizacion),
            ("--ano-en-curso", args.ano_en_curso),
            ("--eur-usd", args.eur_usd),
        ) if value is None
    ]
    if missing:
        parser.error(f"missing arguments: {', '.join(missing)}")

    profile = json.loads(args.perfil.read_text(encoding="utf-8")) if args.perfil else {}
    result = run(
        args.costo,
        args.ano_cotizacion,
        args.ano_en_curso,
        args.eur_usd,
        args.usd_clp,
        profile=profile,
    )
    if not result.ok:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
