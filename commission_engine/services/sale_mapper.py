"""Mapping of untyped CRM deal records onto ``CommissionSaleCreate``.

CRM deals are loose dictionaries whose field names drifted over the years.
Each value we need is looked up through one ordered list of candidate field
names below; the first candidate with a usable value wins.
"""
import logging
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from commission_engine.core.config import settings
from commission_engine.core.developments import canonical_development
from commission_engine.core.exceptions import AppException, ValidationError
from commission_engine.models.commission_sale import CommissionSale
from commission_engine.models.partner import ProductPartner
from commission_engine.schemas.commission import BatchResult, CommissionSaleCreate
from commission_engine.schemas.partner import ProductPartnerInput
from commission_engine.services.phase_distributor import price_per_area


logger = logging.getLogger(__name__)

TERM_FIELDS = (
    "Plazo",
    "Plazo_Deal",
    "Plazo_de_Deal",
    "Plazo_De_Deal",
    "Plazo_Deal_Numero",
    "Plazo_Numero",
    "Plazo_Meses",
    "Plazo_en_Meses",
    "Payment_Terms",
    "Terms",
    "Plazo_Pago",
)
DEVELOPMENT_FIELDS = ("Desarrollo", "Desarollo")
AREA_FIELDS = ("Metros_Cuadrados", "Metros2", "M2", "m2", "Metros", "Superficie", "Area")
ADVISOR_NAME_FIELDS = ("Asesor_Externo", "Asesor_Externo_Nombre", "External_Advisor", "Advisor_Name")
ADVISOR_ID_FIELDS = ("Asesor_Externo_Id", "External_Advisor_Id", "Advisor_Id")
PRODUCT_FIELDS = ("Producto",)
LOT_FIELDS = ("Lote", "Lote_Numero")
STREET_FIELDS = ("Calle", "Calle_Nombre")
PARTNER_FIELDS = ("Socios", "Partners")

DEAL_NAME_SEPARATOR = " - "
UNNAMED_CLIENT = "Cliente sin nombre"
UNKNOWN_OWNER = "Sin propietario"

_NUMBER = re.compile(r"\d+(?:\.\d+)?")


def _is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def first_present(record: Dict[str, Any], candidates: Iterable[str]) -> Any:
    for field in candidates:
        value = record.get(field)
        if not _is_blank(value):
            return value
    return None


def lookup_name(value) -> Optional[str]:
    """CRM lookups arrive either as plain strings or as ``{"name", "id"}``"""
    if isinstance(value, dict):
        value = value.get("name")
    if _is_blank(value):
        return None
    return str(value).strip()


def lookup_id(value) -> Optional[str]:
    if isinstance(value, dict):
        value = value.get("id")
    if _is_blank(value):
        return None
    return str(value).strip()


def parse_decimal(value) -> Optional[Decimal]:
    if _is_blank(value):
        return None
    if isinstance(value, (int, float, Decimal)):
        cleaned = str(value)
    else:
        cleaned = str(value).replace(",", "").replace("$", "").strip()
    try:
        parsed = Decimal(cleaned)
    except InvalidOperation:
        return None
    return parsed if parsed.is_finite() else None


def parse_term_months(value) -> Optional[int]:
    """``12``, ``"12"``, ``"12 meses"`` -> 12"""
    if _is_blank(value):
        return None
    if isinstance(value, (int, float, Decimal)):
        return int(value) if Decimal(str(value)).is_finite() else None
    match = _NUMBER.search(str(value))
    if not match:
        return None
    return int(Decimal(match.group(0)))


def parse_date(value) -> Optional[date]:
    if _is_blank(value):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.fromisoformat(str(value).strip()[:10]).date()
    except ValueError:
        return None


def split_deal_name(deal_name: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    """``"Client - Product"`` -> (client, product); extra separators stay in the product"""
    if _is_blank(deal_name):
        return None, None
    parts = deal_name.split(DEAL_NAME_SEPARATOR)
    client = parts[0].strip() or None
    product = DEAL_NAME_SEPARATOR.join(parts[1:]).strip() or None
    return client, product


def _product_fallback(record: Dict[str, Any]) -> Optional[str]:
    product = first_present(record, PRODUCT_FIELDS)
    if product is not None:
        return str(product).strip()
    lot = first_present(record, LOT_FIELDS)
    street = first_present(record, STREET_FIELDS)
    if lot is not None and street is not None:
        return f"{lot} - {street}"
    value = lot if lot is not None else street
    return str(value) if value is not None else None


def _partners(record: Dict[str, Any]) -> List[ProductPartnerInput]:
    partners = []
    for item in first_present(record, PARTNER_FIELDS) or []:
        name = lookup_name(item.get("socio_name") or item.get("name"))
        participacion = parse_decimal(item.get("participacion"))
        if not name or participacion is None:
            continue
        partners.append(ProductPartnerInput(
            socio_name=name,
            participacion=participacion,
            zoho_product_id=lookup_id(item.get("product_id")),
        ))
    return partners


def map_deal(record: Dict[str, Any]) -> CommissionSaleCreate:
    """Map one CRM deal to a typed sale.

    Raises ``ValidationError`` listing every missing required value and
    ``ComputationError`` when a reported area is not positive.
    """
    deal_id = lookup_id(record.get("id"))
    deal_name = record.get("Deal_Name")
    client, product = split_deal_name(deal_name)
    client = client or lookup_name(record.get("Account_Name")) or UNNAMED_CLIENT
    product = product or _product_fallback(record)

    desarrollo = canonical_development(lookup_name(first_present(record, DEVELOPMENT_FIELDS)))
    fecha_firma = parse_date(record.get("Closing_Date"))
    valor_total = parse_decimal(record.get("Amount")) or Decimal("0")

    errors = []
    if not deal_id:
        errors.append("Deal has no id")
    if not desarrollo:
        errors.append(f"Deal {deal_id} has no development")
    if not fecha_firma:
        errors.append(f"Deal {deal_id} has no closing date")
    if valor_total <= 0:
        errors.append(f"Deal {deal_id} has no valid total amount")
    if errors:
        raise ValidationError(f"Deal {deal_id} cannot be synced", errors=errors)

    metros_cuadrados = parse_decimal(first_present(record, AREA_FIELDS))
    precio_por_m2 = None
    if metros_cuadrados is not None:
        precio_por_m2 = price_per_area(valor_total, metros_cuadrados)

    owner = record.get("Owner")
    return CommissionSaleCreate(
        zoho_deal_id=deal_id,
        deal_name=deal_name,
        cliente_nombre=client,
        desarrollo=desarrollo,
        propietario_deal=lookup_name(owner) or UNKNOWN_OWNER,
        propietario_deal_id=lookup_id(owner),
        producto=product,
        plazo_deal=parse_term_months(first_present(record, TERM_FIELDS)),
        metros_cuadrados=metros_cuadrados,
        precio_por_m2=precio_por_m2,
        valor_total=valor_total,
        fecha_firma=fecha_firma,
        asesor_externo=lookup_name(first_present(record, ADVISOR_NAME_FIELDS)),
        asesor_externo_id=lookup_id(first_present(record, ADVISOR_ID_FIELDS)),
        partners=_partners(record),
    )


def upsert_sale(db: Session, data: CommissionSaleCreate) -> Tuple[CommissionSale, bool]:
    """Create or update a sale by CRM deal id; returns (sale, created).

    Calculation state and frozen percents are left untouched on update.
    """
    names = [partner.socio_name for partner in data.partners]
    duplicates = sorted({name for name in names if names.count(name) > 1})
    if duplicates:
        raise ValidationError(
            f"Deal {data.zoho_deal_id} lists a partner more than once",
            errors=[f"Partner '{name}' is listed more than once" for name in duplicates],
        )

    sale = db.query(CommissionSale).filter(CommissionSale.zoho_deal_id == data.zoho_deal_id).first()
    created = sale is None
    if created:
        sale = CommissionSale(zoho_deal_id=data.zoho_deal_id)
        db.add(sale)

    for field, value in data.model_dump(exclude={"zoho_deal_id", "partners"}).items():
        setattr(sale, field, value)
    sale.synced_at = datetime.utcnow()
    db.flush()

    if data.partners:
        existing = {p.socio_name: p for p in db.query(ProductPartner).filter(ProductPartner.sale_id == sale.id).all()}
        incoming = {p.socio_name for p in data.partners}
        for partner in data.partners:
            record = existing.get(partner.socio_name)
            if record is None:
                record = ProductPartner(sale_id=sale.id, socio_name=partner.socio_name)
                db.add(record)
            record.participacion = partner.participacion
            record.zoho_product_id = partner.zoho_product_id
            record.synced_at = sale.synced_at
        for socio_name, record in existing.items():
            if socio_name not in incoming:
                db.delete(record)
        db.flush()

    return sale, created


def sync_sales(db: Session, records: Iterable[Dict[str, Any]], limit: Optional[int] = None) -> BatchResult:
    """Upsert CRM deals as sales, one transaction per deal.

    New deals count as processed, already-known deals (updated in place) as
    skipped, and any deal that cannot be mapped or stored as failed.
    """
    limit = limit or settings.SYNC_BATCH_LIMIT
    batch = BatchResult()

    for index, record in enumerate(records):
        if index >= limit:
            logger.warning("Sync limit of %d deals reached, remaining deals left for the next run", limit)
            break

        key = str(record.get("id") or f"#{index}")
        try:
            _, created = upsert_sale(db, map_deal(record))
            db.commit()
        except AppException as e:
            db.rollback()
            message = "; ".join(e.details.get("errors", [])) or e.message
            logger.warning("Deal %s not synced: %s", key, message)
            batch.record_failure(key, message)
            continue
        except Exception as e:
            db.rollback()
            logger.exception("Unexpected error syncing deal %s", key)
            batch.record_failure(key, str(e))
            continue

        if created:
            batch.processed += 1
        else:
            batch.skipped += 1

    logger.info(
        "Deal sync: processed=%d skipped=%d failed=%d",
        batch.processed, batch.skipped, batch.failed
    )
    return batch
