"""Cart totals, form checks and money formatting for the marketplace pages."""

from typing import Dict, Iterable, List, Mapping


def _number(value, default=0):
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _blank(value) -> bool:
    return value is None or str(value).strip() == ""


def line_total(quantity, unit_price) -> float:
    return _number(quantity) * _number(unit_price)


def _item_total(item: Mapping) -> float:
    if _blank(item.get("total_price")):
        return line_total(item.get("quantity"), item.get("unit_price"))
    return _number(item.get("total_price"))


def cart_summary(items: List[Dict]) -> Dict:
    total_amount = sum(_item_total(item) for item in items)
    total_quantity = sum(_number(item.get("quantity")) for item in items)
    return {
        "totalItems": len(items),
        "totalAmount": total_amount,
        "totalQuantity": total_quantity,
        "items": items,
    }


def validate_product(data: Mapping) -> List[str]:
    errors = []
    if _blank(data.get("name")):
        errors.append("Nama produk harus diisi")
    if _blank(data.get("category")):
        errors.append("Kategori harus diisi")
    if _number(data.get("price")) <= 0:
        errors.append("Harga harus lebih dari 0")
    if _blank(data.get("unit")):
        errors.append("Unit harus diisi")
    if data.get("stock") is None or _number(data.get("stock"), -1) < 0:
        errors.append("Stok tidak boleh negatif")
    return errors


DRIVER_FIELDS = (
    ("name", "Nama driver harus diisi"),
    ("phone", "Nomor telepon harus diisi"),
    ("license_number", "Nomor SIM harus diisi"),
    ("vehicle_type", "Jenis kendaraan harus diisi"),
    ("vehicle_number", "Nomor kendaraan harus diisi"),
)

ADDRESS_FIELDS = (
    ("label", "Label alamat harus diisi"),
    ("recipient_name", "Nama penerima harus diisi"),
    ("phone", "Nomor telepon harus diisi"),
    ("full_address", "Alamat lengkap harus diisi"),
)


def _required(data: Mapping, fields) -> List[str]:
    return [message for field, message in fields if _blank(data.get(field))]


def validate_driver(data: Mapping) -> List[str]:
    return _required(data, DRIVER_FIELDS)


def validate_address(data: Mapping) -> List[str]:
    errors = _required(data, ADDRESS_FIELDS)
    postal_code = data.get("postal_code")
    if not _blank(postal_code) and not str(postal_code).strip().isdigit():
        errors.append("Kode pos harus berupa angka")
    return errors


def validate_stock(items: Iterable[Mapping], products: Mapping[str, Mapping]) -> Dict:
    """Check requested quantities against current product stock before checkout."""
    validations = []
    for item in items:
        product = products.get(item.get("product_id")) or {}
        available = int(_number(product.get("stock")))
        requested = int(_number(item.get("quantity")))
        validations.append({
            "product_id": item.get("product_id"),
            "product_name": item.get("product_name") or product.get("name"),
            "requested": requested,
            "available": available,
            "isValid": available >= requested,
        })

    invalid = [v for v in validations if not v["isValid"]]
    return {"isValid": not invalid, "invalidItems": invalid, "validations": validations}


def format_currency(amount) -> str:
    """Rupiah without decimals, e.g. ``Rp 15.000``."""
    value = int(round(_number(amount)))
    sign = "-" if value < 0 else ""
    return f"{sign}Rp {abs(value):,}".replace(",", ".")
