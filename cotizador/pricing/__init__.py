"""Pricing — the landed-cost pipeline."""

from cotizador.pricing.cost_pipeline import compute_product_cost

__all__ = ["compute_product_cost"]
