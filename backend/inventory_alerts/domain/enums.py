from enum import Enum

class ThresholdCategory(str, Enum):
    ELECTRONICS = "electronics"
    CLOTHING = "clothing"
    FOOD = "food"
    DEFAULT = "default"

# Se aplican cuando la empresa no tiene tabla de umbrales u omite una clave
DEFAULT_LOW_STOCK_THRESHOLDS = {
    ThresholdCategory.ELECTRONICS.value: 10,
    ThresholdCategory.CLOTHING.value: 25,
    ThresholdCategory.FOOD.value: 50,
    ThresholdCategory.DEFAULT.value: 20,
}
