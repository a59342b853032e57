"""Configuration -- paths from environment variables plus the FieldOpsSettings model

FieldOpsSettings is passed explicitly into services at construction time, so
tests and environments can override thresholds and budgets without globals.
"""

import os
from decimal import Decimal
from pathlib import Path

import structlog
from pydantic import BaseModel, Field

log = structlog.get_logger()


def _get_base_dir() -> Path:
    """Base data directory"""
    return Path(os.environ.get("FIELDOPS_DATA_DIR", "data"))


def get_db_path() -> str:
    """SQLite database path"""
    return os.environ.get(
        "FIELDOPS_DB_PATH",
        str(_get_base_dir() / "sqlite" / "fieldops.db"),
    )


def get_blob_dir() -> Path:
    """Directory used by the local attachment gateway"""
    return Path(
        os.environ.get(
            "FIELDOPS_BLOB_DIR",
            str(_get_base_dir() / "blobs"),
        )
    )


DEFAULT_ALLOWED_MIME_TYPES: tuple[str, ...] = (
    "application/pdf",
    "image/jpeg",
    "image/png",
    "image/webp",
    "image/heic",
    "image/heif",
    "video/mp4",
    "video/quicktime",
    "video/webm",
)

DEFAULT_INVOICE_MIME_TYPES: tuple[str, ...] = (
    "image/jpeg",
    "image/png",
    "image/heic",
)


class FieldOpsSettings(BaseModel):
    """Runtime settings for the coordinator and the checkout transaction manager

    Environment variables:
        FIELDOPS_DISTANCE_THRESHOLD_M: soft-fail distance threshold (default 100)
        FIELDOPS_TX_TIMEOUT_S: atomic phase budget in seconds (default 10)
        FIELDOPS_LOCK_WAIT_S: lock-wait budget in seconds (default 5)
        FIELDOPS_UPLOAD_TIMEOUT_S: attachment gateway budget (default 30)
        FIELDOPS_CHECKOUT_MAX_ATTEMPTS: checkout attempts on timeout (default 2)
        FIELDOPS_DEFAULT_CURRENCY: currency when none is given (default VND)
        FIELDOPS_REQUIRE_CHECK_IN: "true" to require a check-in before checkout
    """

    distance_threshold_m: float = Field(default=100.0, gt=0)
    transaction_timeout_s: float = Field(default=10.0, gt=0)
    lock_wait_timeout_s: float = Field(default=5.0, gt=0)
    upload_timeout_s: float = Field(default=30.0, gt=0)
    checkout_max_attempts: int = Field(default=2, ge=1, le=5)

    max_attachments: int = Field(default=10, ge=0)
    max_attachment_bytes: int = Field(default=50 * 1024 * 1024, gt=0)
    allowed_mime_types: tuple[str, ...] = DEFAULT_ALLOWED_MIME_TYPES
    invoice_mime_types: tuple[str, ...] = DEFAULT_INVOICE_MIME_TYPES
    max_note_length: int = Field(default=1000, gt=0)

    default_currency: str = Field(default="VND", min_length=3, max_length=3)
    max_payment_amount: Decimal = Field(default=Decimal("10000000000"), gt=0)
    require_check_in_before_checkout: bool = False


# env var -> (field name, parser)
_ENV_FIELDS: dict[str, tuple[str, type]] = {
    "FIELDOPS_DISTANCE_THRESHOLD_M": ("distance_threshold_m", float),
    "FIELDOPS_TX_TIMEOUT_S": ("transaction_timeout_s", float),
    "FIELDOPS_LOCK_WAIT_S": ("lock_wait_timeout_s", float),
    "FIELDOPS_UPLOAD_TIMEOUT_S": ("upload_timeout_s", float),
    "FIELDOPS_CHECKOUT_MAX_ATTEMPTS": ("checkout_max_attempts", int),
    "FIELDOPS_MAX_ATTACHMENTS": ("max_attachments", int),
}


def load_settings() -> FieldOpsSettings:
    """Build FieldOpsSettings from FIELDOPS_* environment variables

    Malformed numeric values are logged and the default is kept.
    """
    kwargs: dict = {}

    for env_var, (field_name, parser) in _ENV_FIELDS.items():
        val = os.environ.get(env_var)
        if not val:
            continue
        try:
            kwargs[field_name] = parser(val)
        except ValueError:
            log.warning(
                "invalid_settings_value",
                env_var=env_var,
                value=val,
                fallback=FieldOpsSettings.model_fields[field_name].default,
            )

    if val := os.environ.get("FIELDOPS_DEFAULT_CURRENCY"):
        kwargs["default_currency"] = val.upper()

    if val := os.environ.get("FIELDOPS_REQUIRE_CHECK_IN"):
        kwargs["require_check_in_before_checkout"] = val.lower() == "true"

    return FieldOpsSettings(**kwargs)
