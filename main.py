"""Simple entrypoint to run one Daily Mirror recommendation cycle locally."""

import json
from datetime import date

from mirror_app.app import DailyMirrorService
from mirror_app.config import MirrorConfig
from mirror_app.logging_config import configure_logging
from models.context import WeatherContext
from models.taxonomy import WeatherCondition
from tools.data_source import InMemoryDataSource

DEMO_USER = "demo-user"
DEMO_WARDROBE = [
    {"item_id": "white-shirt", "category": "top", "colors": ["white"], "tags": ["business"]},
    {"item_id": "navy-trousers", "category": "bottom", "colors": ["navy"], "tags": ["business"]},
    {"item_id": "brown-shoes", "category": "shoes", "colors": ["brown"], "tags": ["leather"]},
    {"item_id": "gray-blazer", "category": "outerwear", "colors": ["gray"], "tags": ["business"]},
]


def main() -> None:
    configure_logging()
    data_source = InMemoryDataSource(
        wardrobe={DEMO_USER: DEMO_WARDROBE},
        weather=WeatherContext(temperature_c=21.0, condition=WeatherCondition.SUNNY, location="Lisbon"),
    )
    service = DailyMirrorService.from_data_source(data_source, MirrorConfig())
    try:
        result = service.generate_daily_recommendations(DEMO_USER, date.today(), "Lisbon")
        print(json.dumps(result.to_dict(), indent=2))
    finally:
        service.close()


if __name__ == "__main__":
    main()
