"""Platform-wide constants."""

BRAND_NAME = "HelperHive"

DEFAULT_COUNTRY = "South Africa"

SA_PROVINCES = (
    "Western Cape",
    "Eastern Cape",
    "Northern Cape",
    "Free State",
    "KwaZulu-Natal",
    "North West",
    "Gauteng",
    "Mpumalanga",
    "Limpopo",
)

BOOKING_NUMBER_PREFIX = "HH"

DEFAULT_SERVING_RADIUS_KM = 25
EARTH_RADIUS_KM = 6371.0

DEFAULT_EMERGENCY_REASON = "Emergency situation reported"
DEFAULT_CANCEL_REASON = "Cancelled by user"
DEFAULT_DECLINE_REASON = "Provider declined"
ADMIN_REFUND_REASON = "Admin resolution - customer refund"
NO_REFUND_MESSAGE = "No refund available due to timing policy"
