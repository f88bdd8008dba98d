from enum import Enum

class PricingErrorCode(str, Enum):
    INVALID_INPUT = "INVALID_INPUT"
    INVALID_PROFILE_VALUE = "INVALID_PROFILE_VALUE"

class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"
