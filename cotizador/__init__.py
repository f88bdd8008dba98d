"""Cotizador — landed-cost pricing and quote history backend."""
