"""
Data schemas shared by the cost pipeline, the repositories and the API.

Python attribute names are snake_case; the aliases are the field names the
frontend and the stored documents use, so responses are dumped with
``by_alias=True``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from .enums import PricingErrorCode


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _AliasedModel(BaseModel):
    model_config = {"populate_by_name": True}


# ── Cost profiles ────────────────────────────────────────


class CostProfileFields(BaseModel):
    """Every numeric parameter a cost profile carries."""

    # Discounts and buffers, as decimals (0.02 == 2%)
    descuento_fabrica_pct: float = 0.0
    buffer_eur_usd_pct: float = 0.0
    buffer_usd_clp_pct: float = 0.0
    tasa_seguro_pct: float = 0.0
    margen_adicional_pct: float = 0.0
    descuento_cliente_pct: float = 0.0

    # Fixed operational costs
    costo_logistica_origen_eur: float = 0.0
    flete_maritimo_usd: float = 0.0
    recargos_destino_usd: float = 0.0
    costo_agente_aduana_usd: float = 0.0
    gastos_portuarios_otros_usd: float = 0.0
    transporte_nacional_clp: float = 0.0

    # Stored for reference; the pipeline applies fixed legal rates
    derecho_advalorem_pct: float = 0.06
    iva_pct: float = 0.19


class CostProfileCreate(CostProfileFields):
    nombre_perfil: str
    descripcion: str = ""

    @field_validator("nombre_perfil")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("El campo 'nombre_perfil' es obligatorio y no puede estar vacío.")
        return value


class CostProfileUpdate(BaseModel):
    """Partial update — only the fields that are sent get changed."""
    nombre_perfil: Optional[str] = None
    descripcion: Optional[str] = None
    descuento_fabrica_pct: Optional[float] = None
    buffer_eur_usd_pct: Optional[float] = None
    buffer_usd_clp_pct: Optional[float] = None
    tasa_seguro_pct: Optional[float] = None
    margen_adicional_pct: Optional[float] = None
    descuento_cliente_pct: Optional[float] = None
    costo_logistica_origen_eur: Optional[float] = None
    flete_maritimo_usd: Optional[float] = None
    recargos_destino_usd: Optional[float] = None
    costo_agente_aduana_usd: Optional[float] = None
    gastos_portuarios_otros_usd: Optional[float] = None
    transporte_nacional_clp: Optional[float] = None
    derecho_advalorem_pct: Optional[float] = None
    iva_pct: Optional[float] = None

    @field_validator("nombre_perfil")
    @classmethod
    def _name_not_blank(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            raise ValueError("El campo 'nombre_perfil' no puede estar vacío.")
        return value


class CostProfile(CostProfileCreate):
    """A stored cost profile."""
    model_config = {"populate_by_name": True}

    id: str = Field(default="", alias="_id")
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


# ── Pipeline request ─────────────────────────────────────


class PricingRequest(_AliasedModel):
    ano_cotizacion: int = Field(alias="anoCotizacion")
    ano_en_curso: int = Field(alias="anoEnCurso")
    costo_fabrica_original_eur: float = Field(alias="costoFabricaOriginalEUR")
    tipo_cambio_eur_usd_actual: float = Field(alias="tipoCambioEurUsdActual")
    tipo_cambio_usd_clp_actual: float = Field(alias="tipoCambioUsdClpActual")


# ── Pipeline result ──────────────────────────────────────


class PricingInputs(_AliasedModel):
    """Echo of the request plus every profile scalar the pipeline used."""
    ano_cotizacion: int = Field(alias="anoCotizacion")
    ano_en_curso: int = Field(alias="anoEnCurso")
    costo_fabrica_original_eur: float = Field(alias="costoFabricaOriginalEUR")
    tipo_cambio_eur_usd_actual: float = Field(alias="tipoCambioEurUsdActual")
    tipo_cambio_usd_clp_actual: float = Field(alias="tipoCambioUsdClpActual")
    buffer_eur_usd: float = Field(alias="bufferEurUsd_fromProfile")
    descuento_fabrica: float = Field(alias="descuentoFabrica_fromProfile")
    costo_origen_eur: float = Field(alias="costoOrigenEUR_fromProfile")
    flete_maritimo_usd: float = Field(alias="fleteMaritimoUSD_fromProfile")
    recargos_destino_usd: float = Field(alias="recargosDestinoUSD_fromProfile")
    tasa_seguro_pct: float = Field(alias="tasaSeguroPct_fromProfile")
    costo_agente_aduana_usd: float = Field(alias="costoAgenteAduanaUSD_fromProfile")
    gastos_portuarios_otros_usd: float = Field(alias="gastosPortuariosOtrosUSD_fromProfile")
    transporte_nacional_clp: float = Field(alias="transporteNacionalCLP_fromProfile")
    buffer_usd_clp_pct: float = Field(alias="bufferUsdClpPct_fromProfile")
    margen_adicional_pct: float = Field(alias="margenAdicionalPct_fromProfile")
    descuento_cliente_pct: float = Field(alias="descuentoClientePct_fromProfile")


class CostoProducto(_AliasedModel):
    """Stage 1 — factory cost, EXW in USD."""
    factor_actualizacion: float = Field(alias="factorActualizacion")
    costo_fabrica_actualizado_eur: float = Field(alias="costoFabricaActualizadoEUR")
    costo_fabrica_descontado_eur_exw: float = Field(alias="costoFabricaDescontadoEUR_EXW")
    tipo_cambio_eur_usd_aplicado: float = Field(alias="tipoCambioEurUsdAplicado")
    costo_final_fabrica_usd_exw: float = Field(alias="costoFinalFabricaUSD_EXW")


class LogisticaSeguro(_AliasedModel):
    """Stage 2 — logistics and insurance in USD."""
    costos_origen_usd: float = Field(alias="costosOrigenUSD")
    costo_total_flete_manejos_usd: float = Field(alias="costoTotalFleteManejosUSD")
    base_para_seguro_usd: float = Field(alias="baseParaSeguroUSD")
    prima_seguro_usd: float = Field(alias="primaSeguroUSD")
    total_transporte_seguro_exw_usd: float = Field(alias="totalTransporteSeguroEXW_USD")


class Importacion(_AliasedModel):
    """Stage 3 — import duties in USD."""
    valor_cif_usd: float = Field(alias="valorCIF_USD")
    derecho_advalorem_usd: float = Field(alias="derechoAdvaloremUSD")
    base_iva_importacion_usd: float = Field(alias="baseIvaImportacionUSD")
    iva_importacion_usd: float = Field(alias="ivaImportacionUSD")
    total_costos_importacion_duty_fees_usd: float = Field(alias="totalCostosImportacionDutyFeesUSD")


class LandedCost(_AliasedModel):
    """Stage 4 — cost placed in the warehouse, USD."""
    transporte_nacional_usd: float = Field(alias="transporteNacionalUSD")
    precio_neto_compra_base_usd_landed_cost: float = Field(alias="precioNetoCompraBaseUSD_LandedCost")


class ConversionMargen(_AliasedModel):
    """Stage 5 — conversion to CLP and margin."""
    tipo_cambio_usd_clp_aplicado: float = Field(alias="tipoCambioUsdClpAplicado")
    precio_neto_compra_base_clp: float = Field(alias="precioNetoCompraBaseCLP")
    margen_clp: float = Field(alias="margenCLP")
    precio_venta_neto_clp: float = Field(alias="precioVentaNetoCLP")


class PreciosCliente(_AliasedModel):
    """Stage 6 — client-facing prices in CLP."""
    precio_neto_venta_final_clp: float = Field(alias="precioNetoVentaFinalCLP")
    iva_venta_clp: float = Field(alias="ivaVentaCLP")
    precio_venta_total_cliente_clp: float = Field(alias="precioVentaTotalClienteCLP")


class CalculatedBreakdown(BaseModel):
    costo_producto: CostoProducto
    logistica_seguro: LogisticaSeguro
    importacion: Importacion
    landed_cost: LandedCost
    conversion_margen: ConversionMargen
    precios_cliente: PreciosCliente


class PricingResult(BaseModel):
    """Either ``error`` is set, or both ``inputs`` and ``calculados`` are."""
    inputs: Optional[PricingInputs] = None
    calculados: Optional[CalculatedBreakdown] = None
    error: Optional[str] = None

    # Internal details, never serialized
    error_code: Optional[PricingErrorCode] = Field(default=None, exclude=True)
    unused_profile_tax_rates: dict[str, float] = Field(default_factory=dict, exclude=True)

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_response(self) -> dict[str, Any]:
        """Wire shape: ``{inputs, calculados}`` or ``{error}``."""
        return self.model_dump(by_alias=True, exclude_none=True)


# ── Currency ─────────────────────────────────────────────


class CurrencySnapshot(_AliasedModel):
    """Raw values from the currency webhook plus the time they were fetched."""
    valor_dolar: str = Field(alias="Valor_Dolar")
    valor_euro: str = Field(alias="Valor_Euro")
    fecha: str = Field(alias="Fecha")
    last_update: datetime = Field(default_factory=_utcnow)


# ── Quote history ────────────────────────────────────────


class QuoteDetails(_AliasedModel):
    cliente_nombre: Optional[str] = Field(default=None, alias="clienteNombre")
    emisor_nombre: Optional[str] = Field(default=None, alias="emisorNombre")
    empresa_que_cotiza: Optional[str] = Field(default=None, alias="empresaQueCotiza")


class QuoteHistoryCreate(_AliasedModel):
    items_para_cotizar: list[dict[str, Any]] = Field(alias="itemsParaCotizar", min_length=1)
    resultados_calculados: dict[str, Any] = Field(alias="resultadosCalculados")
    cotizacion_details: Optional[QuoteDetails] = Field(default=None, alias="cotizacionDetails")
    nombre_referencia: Optional[str] = Field(default=None, alias="nombreReferencia")
    selected_profile_id: Optional[str] = Field(default=None, alias="selectedProfileId")
    nombre_perfil: Optional[str] = Field(default=None, alias="nombrePerfil")
    ano_en_curso_global: Optional[int] = Field(default=None, alias="anoEnCursoGlobal")


class QuoteHistoryRecord(QuoteHistoryCreate):
    id: str = Field(default="", alias="_id")
    numero_configuracion: int = Field(alias="numeroConfiguracion")
    created_at: datetime = Field(default_factory=_utcnow, alias="createdAt")


# ── Product catalog ──────────────────────────────────────
# Stored documents keep the catalog's own keys (Codigo_Producto, caracteristicas...).
# Unknown fields are kept as-is.


class ProductCharacteristics(BaseModel):
    model_config = {"extra": "allow"}

    nombre_del_producto: Optional[str] = None
    modelo: str
    fecha_cotizacion: Optional[str] = None
    descontinuado: bool = False

    @field_validator("modelo")
    @classmethod
    def _modelo_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("El modelo es obligatorio.")
        return value


class ProductDimensions(BaseModel):
    model_config = {"extra": "allow"}

    largo_mm: float
    ancho_mm: float
    alto_mm: float


class AccountingData(BaseModel):
    costo_fabrica: Optional[float] = None
    divisa_costo: str = "EUR"
    costo_ano_cotizacion: Optional[int] = None


class ProductCreate(_AliasedModel):
    model_config = {"populate_by_name": True, "extra": "allow"}

    codigo_producto: str = Field(alias="Codigo_Producto")
    peso_kg: float
    caracteristicas: ProductCharacteristics
    dimensiones: ProductDimensions
    especificaciones_tecnicas: Optional[dict[str, Any]] = None
    metadata: Optional[dict[str, Any]] = None
    tipo: Optional[str] = None
    familia: Optional[str] = None
    proveedor: Optional[str] = None
    procedencia: Optional[str] = None
    nombre_comercial: Optional[str] = None
    descripcion: Optional[str] = None
    clasificacion_easysystems: Optional[str] = None
    codigo_ea: Optional[str] = None
    # Product line, e.g. "Chipeadora Motor" / "Chipeadora PTO"
    producto: Optional[str] = None
    datos_contables: Optional[AccountingData] = None
    es_opcional: bool = False
    descontinuado: bool = False
    ultima_observacion_edicion: Optional[str] = None

    @field_validator("codigo_producto")
    @classmethod
    def _code_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("El campo 'Codigo_Producto' es obligatorio.")
        return value
