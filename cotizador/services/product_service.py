"""
Product Service — catalog reads and edits, and optional-accessory lookup.

Catalog responses add the flat display fields the quoting screens use
(``codigo_producto``, ``nombre_del_producto``, ``Descripcion``, ``Modelo``,
``categoria``, ``fabricante``), with ``"-"`` when the product has no value.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from cotizador.exceptions import InvalidProductDataError, ProductNotFoundError
from cotizador.models.schemas import ProductCreate
from cotizador.persistence.product_repository import ProductRepository

logger = logging.getLogger(__name__)

PLACEHOLDER = "-"


def catalog_view(doc: dict[str, Any]) -> dict[str, Any]:
    """Stored product plus the flat display fields."""
    view = dict(doc)
    caracteristicas = doc.get("caracteristicas") if isinstance(doc.get("caracteristicas"), dict) else {}

    view["codigo_producto"] = doc.get("codigo_producto") or doc.get("Codigo_Producto") or PLACEHOLDER
    view["nombre_del_producto"] = caracteristicas.get("nombre_del_producto") or PLACEHOLDER
    view["Descripcion"] = caracteristicas.get("descripcion") or doc.get("descripcion") or PLACEHOLDER
    view["Modelo"] = caracteristicas.get("modelo") or PLACEHOLDER
    view["categoria"] = caracteristicas.get("categoria") or doc.get("categoria") or PLACEHOLDER
    view["fabricante"] = caracteristicas.get("fabricante") or doc.get("fabricante") or PLACEHOLDER
    return view


def drive_type(producto: str) -> Optional[str]:
    """"motor", "pto" or None, read from the product line name."""
    text = producto.lower()
    if "motor" in text:
        return "motor"
    if "pto" in text:
        return "pto"
    return None


def _drive_matches(principal: str, optional: str) -> bool:
    optional_text = optional.lower()
    is_motor = "motor" in optional_text
    is_pto = "pto" in optional_text
    kind = drive_type(principal)
    if kind == "motor":
        return is_motor and not is_pto
    if kind == "pto":
        return is_pto and not is_motor
    return not is_motor and not is_pto


def is_compatible_optional(principal: dict[str, Any], optional: dict[str, Any]) -> bool:
    """
    An accessory fits a machine when the machine's model contains the
    accessory's model (case-insensitive) and both share the drive type.
    Accessories without a model or product line never match.
    """
    modelo = (optional.get("caracteristicas") or {}).get("modelo")
    producto = optional.get("producto")
    if not modelo or not producto:
        return False

    modelo_principal = principal["caracteristicas"]["modelo"].lower()
    if modelo.lower() not in modelo_principal:
        return False
    return _drive_matches(principal["producto"], producto)


class ProductService:
    def __init__(self, products: ProductRepository):
        self.products = products

    def list_products(self) -> list[dict[str, Any]]:
        return [catalog_view(p) for p in self.products.list_all()]

    def get_product(self, code: str) -> dict[str, Any]:
        product = self.products.get_by_code(code)
        if product is None:
            raise ProductNotFoundError(code)
        return catalog_view(product)

    def create_product(self, data: ProductCreate) -> dict[str, Any]:
        return self.products.create(data)

    def update_product(self, code: str, changes: dict[str, Any]) -> dict[str, Any]:
        if not changes:
            raise InvalidProductDataError("El cuerpo de la solicitud no puede estar vacío.")
        product = self.products.update(code, changes)
        if product is None:
            raise ProductNotFoundError(code)
        return catalog_view(product)

    def toggle_discontinued(self, code: str) -> dict[str, Any]:
        product = self.products.get_by_code(code)
        if product is None:
            raise ProductNotFoundError(code)
        return self.update_product(code, {"descontinuado": not product.get("descontinuado", False)})

    def find_optionals(self, code: str) -> list[dict[str, Any]]:
        """Accessories compatible with the product *code*."""
        if not code:
            raise InvalidProductDataError("Se requiere el código del producto principal.")
        principal = self.products.get_by_code(code)
        if principal is None:
            raise ProductNotFoundError(code)
        if not (principal.get("caracteristicas") or {}).get("modelo"):
            raise InvalidProductDataError(
                'El producto principal no tiene "caracteristicas.modelo" definido.'
            )
        if not principal.get("producto"):
            raise InvalidProductDataError('El producto principal no tiene el campo "producto" definido.')

        candidates = self.products.find_optional_candidates(code)
        matches = [c for c in candidates if is_compatible_optional(principal, c)]
        logger.info(f"Optionals for {code}: {len(matches)} of {len(candidates)} candidates match")
        return [catalog_view(m) for m in matches]
