"""
Product catalog API routes.

Routes:
  GET    /api/products                                  → Catalog list
  POST   /api/products                                  → Create a product
  GET    /api/products/opcionales?codigo=               → Optionals compatible with a product
  GET    /api/products/{codigo}                         → One product
  PUT    /api/products/code/{codigo}                    → Partial update
  PUT    /api/products/code/{codigo}/toggle-discontinued → Flip the discontinued flag
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, HTTPException

from cotizador.api.dependencies import get_product_service
from cotizador.exceptions import DuplicateProductError, InvalidProductDataError, ProductNotFoundError
from cotizador.models.schemas import ProductCreate
from cotizador.services.product_service import ProductService

logger = logging.getLogger(__name__)

product_router = APIRouter()


@product_router.get("")
def list_products(products: ProductService = Depends(get_product_service)):
    return products.list_products()


@product_router.post("", status_code=201)
def create_product(body: ProductCreate, products: ProductService = Depends(get_product_service)):
    try:
        product = products.create_product(body)
    except DuplicateProductError:
        raise HTTPException(
            status_code=409,
            detail=f"Ya existe un producto con Codigo_Producto '{body.codigo_producto}'.",
        )
    return {"message": "Producto creado exitosamente.", "data": product}


# Registered before /{codigo} so "opcionales" is not taken as a code
@product_router.get("/opcionales")
def get_optionals(codigo: str = "", products: ProductService = Depends(get_product_service)):
    try:
        matches = products.find_optionals(codigo)
    except ProductNotFoundError:
        raise HTTPException(status_code=404, detail="Producto principal no encontrado.")
    except InvalidProductDataError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {
        "success": True,
        "data": {"total": len(matches), "products": matches},
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@product_router.get("/{codigo}")
def get_product(codigo: str, products: ProductService = Depends(get_product_service)):
    try:
        product = products.get_product(codigo)
    except ProductNotFoundError:
        raise HTTPException(status_code=404, detail="Producto no encontrado.")
    return {"success": True, "data": product}


@product_router.put("/code/{codigo}")
def update_product(
    codigo: str,
    changes: Optional[dict[str, Any]] = Body(default=None),
    products: ProductService = Depends(get_product_service),
):
    try:
        product = products.update_product(codigo, changes or {})
    except InvalidProductDataError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ProductNotFoundError:
        raise HTTPException(status_code=404, detail="Producto no encontrado para actualizar.")
    return {"message": "Producto actualizado exitosamente.", "data": product}


@product_router.put("/code/{codigo}/toggle-discontinued")
def toggle_discontinued(codigo: str, products: ProductService = Depends(get_product_service)):
    try:
        product = products.toggle_discontinued(codigo)
    except ProductNotFoundError:
        raise HTTPException(status_code=404, detail="Producto no encontrado.")
    estado = "descontinuado" if product.get("descontinuado") else "activo"
    return {"message": f"Producto marcado como {estado}.", "data": product}
