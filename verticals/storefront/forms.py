"""Form decoding for the admin editor.

The editor posts one feature block at a time as form fields named after the
stored columns (``noStockEnabled``, ``preorderEndDate`` ...). Encoding rules:

- booleans: present means true, absent means false
- dates: ISO-8601; anything unparseable is treated as absent
- empty strings mean "unset"
- warranty tri-states: ``inherit`` (or empty/absent), ``true`` or ``false``

This is the only place that knows about those rules. Everything past it
receives typed feature blocks.
"""

import math
from datetime import datetime, timezone
from enum import Enum
from typing import Mapping, TypeVar

from core.errors import ValidationError
from verticals.storefront.identifiers import split_ids, validate_product_id
from verticals.storefront.models.domain import (
    INHERIT,
    OutOfStockBlock,
    Override,
    PaymentType,
    PreorderBlock,
    Presentation,
    TermsDisplay,
    TriState,
    WarrantyBlock,
    WarrantyPriceType,
)

EnumT = TypeVar("EnumT", bound=Enum)

FormData = Mapping[str, object]


# ---------------------------------------------------------------------------
# Field decoders
# ---------------------------------------------------------------------------

def _text(form: FormData, name: str) -> str | None:
    value = form.get(name)
    if not isinstance(value, str):
        return None
    return value.strip() or None


def decode_flag(form: FormData, name: str) -> bool:
    return name in form


def decode_date(form: FormData, name: str) -> datetime | None:
    raw = _text(form, name)
    if raw is None:
        return None
    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def decode_number(form: FormData, name: str) -> float | None:
    raw = _text(form, name)
    if raw is None:
        return None
    try:
        value = float(raw)
    except ValueError:
        raise ValidationError(f"{name} must be a number") from None
    if not math.isfinite(value) or value < 0:
        raise ValidationError(f"{name} must be a non-negative number")
    return value


def _parse_enum(name: str, raw: str, enum_cls: type[EnumT]) -> EnumT:
    try:
        return enum_cls(raw.upper())
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"{name} must be one of {allowed}") from None


def decode_choice(form: FormData, name: str, enum_cls: type[EnumT], default: EnumT) -> EnumT:
    raw = _text(form, name)
    if raw is None:
        return default
    return _parse_enum(name, raw, enum_cls)


def decode_tri_bool(form: FormData, name: str) -> TriState[bool]:
    raw = (_text(form, name) or "inherit").lower()
    if raw == "inherit":
        return INHERIT
    if raw in ("true", "on"):
        return Override(True)
    if raw in ("false", "off"):
        return Override(False)
    raise ValidationError(f"{name} must be inherit, true or false")


def decode_tri_choice(form: FormData, name: str, enum_cls: type[EnumT]) -> TriState[EnumT]:
    raw = _text(form, name)
    if raw is None or raw.lower() == "inherit":
        return INHERIT
    return Override(_parse_enum(name, raw, enum_cls))


def decode_product_id(form: FormData) -> str:
    return validate_product_id(_text(form, "productId"))


# ---------------------------------------------------------------------------
# Block decoders
# ---------------------------------------------------------------------------

def decode_out_of_stock(form: FormData) -> OutOfStockBlock:
    return OutOfStockBlock(
        enabled=decode_flag(form, "noStockEnabled"),
        button_text=_text(form, "noStockButtonText"),
        button_color=_text(form, "noStockButtonColor"),
        notify_form_enabled=decode_flag(form, "noStockNotifyFormEnabled"),
        timer_enabled=decode_flag(form, "noStockTimerEnabled"),
        restock_date=decode_date(form, "noStockRestockDate"),
        recommendations_enabled=decode_flag(form, "noStockRecommendationsEnabled"),
        recommended_product_ids=split_ids(_text(form, "noStockRecommendedProductGids")),
    )


def decode_preorder(form: FormData) -> PreorderBlock:
    payment_type = decode_choice(form, "preorderPaymentType", PaymentType, PaymentType.FULL)
    value = decode_number(form, "preorderPartialPaymentValue")
    if payment_type is PaymentType.PARTIAL_PERCENTAGE and value is not None and value > 100:
        raise ValidationError("preorderPartialPaymentValue cannot exceed 100 percent")
    enabled = decode_flag(form, "preorderEnabled")
    if enabled and payment_type is not PaymentType.FULL and value is None:
        raise ValidationError(f"preorderPartialPaymentValue is required for {payment_type.value}")

    return PreorderBlock(
        enabled=enabled,
        button_text=_text(form, "preorderButtonText"),
        button_color=_text(form, "preorderButtonColor"),
        end_date=decode_date(form, "preorderEndDate"),
        payment_type=payment_type,
        partial_payment_value=value,
        terms=_text(form, "preorderTerms"),
        terms_display=decode_choice(
            form, "preorderTermsDisplay", TermsDisplay, TermsDisplay.INLINE
        ),
    )


def decode_warranty(form: FormData) -> WarrantyBlock:
    price_type = decode_choice(
        form, "warrantyPriceType", WarrantyPriceType, WarrantyPriceType.GLOBAL_PERCENTAGE
    )
    value = decode_number(form, "warrantyPriceValue")
    if price_type.is_product_specific and value is None:
        raise ValidationError(f"warrantyPriceValue is required for {price_type.value}")
    if price_type is WarrantyPriceType.PRODUCT_PERCENTAGE and value is not None and value > 100:
        raise ValidationError("warrantyPriceValue cannot exceed 100 percent")

    return WarrantyBlock(
        enabled=decode_tri_bool(form, "warrantyEnabledOverride"),
        presentation=decode_tri_choice(form, "warrantyPresentationOverride", Presentation),
        price_type=price_type,
        price_value=value if price_type.is_product_specific else None,
        variant_id=_text(form, "warrantyVariantId"),
    )
