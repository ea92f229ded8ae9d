"""Shiprocket courier API over REST.

- ``POST orders/create/adhoc``: book an order, returns order/shipment ids.
- ``POST courier/generate/pickup`` with ``{"shipment_id": [id],
  "pickup_date": [date]}``; ``pickup_status == 1`` means scheduled.
- ``POST orders/cancel`` with ``{"ids": [carrier_order_id]}``.
- ``GET courier/serviceability/``: couriers available for a pincode.

Replies are untrusted: anything that is not the expected object shape is
treated as an empty object.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

import requests
import structlog
from django.conf import settings

from modules.shipping.auth import ShiprocketAuth
from modules.shipping.carriers.port import (
    CancellationResult,
    Carrier,
    CourierOption,
    PickupScheduleResult,
    ServiceabilityResult,
    ShipmentCreationResult,
    ShipmentRequest,
)
from modules.shipping.exceptions import CarrierConfigurationError, CarrierError

logger = structlog.get_logger(__name__)

NON_SUCCESS_MESSAGE = "Pickup scheduling returned non-success status"
MAX_COURIER_OPTIONS = 5
UNKNOWN_DELIVERY_DAYS = 99

_DAYS_RE = re.compile(r"(\d+)")


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _identifier(value: Any) -> str:
    if isinstance(value, list):
        value = value[0] if value else None
    if isinstance(value, bool) or value is None:
        return ""
    if isinstance(value, (int, float)):
        return str(int(value))
    return _text(value)


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _json_object(response: requests.Response) -> Dict[str, Any]:
    try:
        return _as_dict(response.json())
    except ValueError:
        return {}


def _number(value: Any, default: float = 0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def estimated_days(value: Any) -> float:
    """Sort key for ``"2-3 Days"``, ``"4"`` or ``3``; unknown sorts last."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    if isinstance(value, str):
        match = _DAYS_RE.search(value)
        if match:
            return float(match.group(1))
    return UNKNOWN_DELIVERY_DAYS


class ShiprocketCarrier(Carrier):
    def __init__(
        self,
        auth: Optional[ShiprocketAuth] = None,
        base_url: Optional[str] = None,
        timeout: Optional[int] = None,
    ) -> None:
        self.auth = auth or ShiprocketAuth()
        self.base_url = (base_url or settings.SHIPROCKET_BASE_URL).rstrip("/")
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECONDS

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.auth.get_token()}"}

    # ------------------------------------------------------------------
    # Pickup
    # ------------------------------------------------------------------

    def request_pickup(self, shipment_id: str, pickup_date: str) -> PickupScheduleResult:
        headers = self._headers()

        try:
            response = requests.post(
                f"{self.base_url}/courier/generate/pickup",
                json={"shipment_id": [shipment_id], "pickup_date": [pickup_date]},
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            return PickupScheduleResult(
                success=False, error=f"Pickup API network error: {exc}"
            )

        body = response.text or ""
        if not response.ok:
            return PickupScheduleResult(
                success=False,
                error=f"Pickup API returned {response.status_code}: {body[:200]}",
            )

        parsed = _json_object(response)
        details = _as_dict(parsed.get("response"))

        try:
            pickup_status = int(parsed.get("pickup_status"))
        except (TypeError, ValueError):
            pickup_status = 0
        if pickup_status != 1:
            message = (
                _text(details.get("message"))
                or _text(parsed.get("response"))
                or _text(parsed.get("message"))
                or NON_SUCCESS_MESSAGE
            )
            return PickupScheduleResult(success=False, error=message)

        scheduled = (
            _text(details.get("pickup_scheduled_date"))
            or _text(_as_dict(details.get("data")).get("pickup_scheduled_date"))
            or pickup_date
        )
        token_number = details.get("pickup_token_number")
        return PickupScheduleResult(
            success=True,
            pickup_scheduled_date=scheduled,
            pickup_token="" if token_number is None else str(token_number),
        )

    # ------------------------------------------------------------------
    # Shipment booking
    # ------------------------------------------------------------------

    def _adhoc_payload(self, request: ShipmentRequest) -> Dict[str, Any]:
        return {
            "order_id": request.order_reference,
            "order_date": request.order_date,
            "pickup_location": settings.SHIPROCKET_PICKUP_LOCATION,
            "billing_customer_name": request.customer_first_name,
            "billing_last_name": request.customer_last_name,
            "billing_address": request.address or "N/A",
            "billing_city": request.city or "N/A",
            "billing_pincode": request.pincode or "000000",
            "billing_state": request.state or "N/A",
            "billing_country": "India",
            "billing_email": request.email,
            "billing_phone": request.phone,
            "shipping_is_billing": True,
            "order_items": [
                {
                    "name": line.name,
                    "sku": line.sku,
                    "units": line.units,
                    "selling_price": line.selling_price,
                }
                for line in request.lines
            ],
            "payment_method": request.payment_method,
            "sub_total": request.sub_total,
            "length": settings.SHIPROCKET_DEFAULT_LENGTH_CM,
            "breadth": settings.SHIPROCKET_DEFAULT_BREADTH_CM,
            "height": settings.SHIPROCKET_DEFAULT_HEIGHT_CM,
            "weight": settings.SHIPROCKET_DEFAULT_WEIGHT_KG,
        }

    def create_shipment(self, request: ShipmentRequest) -> ShipmentCreationResult:
        headers = self._headers()
        try:
            response = requests.post(
                f"{self.base_url}/orders/create/adhoc",
                json=self._adhoc_payload(request),
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise CarrierError(f"Shipment API network error: {exc}") from exc

        if not response.ok:
            raise CarrierError(
                f"Shiprocket shipment creation failed ({response.status_code}): "
                f"{(response.text or '')[:500]}"
            )

        parsed = _json_object(response)
        result = ShipmentCreationResult(
            carrier_order_id=_identifier(parsed.get("order_id"))
            or _identifier(parsed.get("orderId")),
            shipment_id=_identifier(parsed.get("shipment_id")),
            awb_code=_identifier(parsed.get("awb_code")),
            courier_name=_text(parsed.get("courier_name"))
            or _text(parsed.get("courier_company_name")),
            tracking_url=_text(parsed.get("tracking_url"))
            or _text(parsed.get("shipment_track_url")),
        )
        if not result.carrier_order_id and not result.shipment_id:
            raise CarrierError(
                "Shiprocket response did not include order/shipment identifier."
            )
        return result

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------

    def cancel_shipment(self, carrier_order_id: str) -> CancellationResult:
        headers = self._headers()
        try:
            response = requests.post(
                f"{self.base_url}/orders/cancel",
                json={"ids": [carrier_order_id]},
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            return CancellationResult(success=False, message=f"Network error: {exc}")

        body = response.text or ""
        if not response.ok:
            logger.warning(
                "shiprocket.cancel_rejected",
                carrier_order_id=carrier_order_id,
                status_code=response.status_code,
                body=body[:300],
            )
            return CancellationResult(
                success=False,
                message=f"Shiprocket API returned {response.status_code}: {body[:200]}",
            )

        parsed = _json_object(response)
        return CancellationResult(
            success=True,
            message=_text(parsed.get("message")) or "Shipment cancelled successfully.",
            response=parsed,
        )

    # ------------------------------------------------------------------
    # Serviceability
    # ------------------------------------------------------------------

    def check_serviceability(
        self, delivery_pincode: str, weight_kg: float, cod: bool
    ) -> ServiceabilityResult:
        pickup_postcode = settings.SHIPROCKET_PICKUP_POSTCODE
        if not pickup_postcode:
            raise CarrierConfigurationError(
                "Missing required carrier setting: SHIPROCKET_PICKUP_POSTCODE"
            )

        headers = self._headers()
        try:
            response = requests.get(
                f"{self.base_url}/courier/serviceability/",
                params={
                    "pickup_postcode": pickup_postcode,
                    "delivery_postcode": delivery_pincode,
                    "weight": str(weight_kg),
                    "cod": "1" if cod else "0",
                },
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise CarrierError(f"Serviceability API network error: {exc}") from exc

        # 404/422: no courier covers the pincode
        if response.status_code in (404, 422):
            return ServiceabilityResult.unserviceable()
        if not response.ok:
            raise CarrierError(
                f"Shiprocket serviceability check failed ({response.status_code}): "
                f"{(response.text or '')[:300]}"
            )

        companies = _as_dict(_json_object(response).get("data")).get(
            "available_courier_companies"
        )
        if not isinstance(companies, list):
            companies = []
        couriers: List[Dict[str, Any]] = [c for c in companies if isinstance(c, dict)]
        if not couriers:
            return ServiceabilityResult.unserviceable()

        couriers.sort(key=lambda c: estimated_days(c.get("estimated_delivery_days")))
        options = []
        for courier in couriers[:MAX_COURIER_OPTIONS]:
            days = courier.get("estimated_delivery_days")
            options.append(
                CourierOption(
                    id=int(_number(courier.get("id"))),
                    courier_name=str(courier.get("courier_name") or "Unknown"),
                    estimated_delivery_days=(
                        days if isinstance(days, (str, int, float)) else "N/A"
                    ),
                    cod=int(_number(courier.get("cod"))),
                    rate=_number(courier.get("rate")),
                )
            )

        fastest = couriers[0].get("estimated_delivery_days")
        return ServiceabilityResult(
            is_serviceable=True,
            estimated_delivery_days=str(fastest if fastest is not None else "3-5 Days"),
            cod_available=any(int(_number(c.get("cod"))) == 1 for c in couriers),
            courier_options=options,
        )
