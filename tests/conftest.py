from datetime import datetime, timedelta

import pytest


class FakeClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    # Tuesday, ISO week 19
    return FakeClock(datetime(2024, 5, 7, 10, 0, 0))


@pytest.fixture
def fxrates_payload():
    return {
        "availableCountries": [
            {
                "currency": "USD",
                "countryDisplayName": "United States",
                "corridors": [
                    {
                        "currency": "NGN",
                        "countryDisplayName": "Nigeria",
                        "fxRate": 1500.0,
                        "govIncentive": {
                            "effectiveFxRate": 1520.0,
                            "footnote": "Includes CBN incentive",
                        },
                        "feeSchedule": {
                            "type": "standard",
                            "flatFee": 2,
                            "feePercent": 1,
                            "maxFee": 5,
                        },
                    },
                    {
                        "currency": "GHS",
                        "countryDisplayName": "Ghana",
                        "fxRate": 12.5,
                    },
                    {
                        # no fxRate: skipped
                        "currency": "KES",
                        "countryDisplayName": "Kenya",
                    },
                    None,
                ],
            },
            {
                "currency": "GBP",
                "countryDisplayName": "United Kingdom",
                "corridors": [
                    {
                        "currency": "INR",
                        "countryDisplayName": "India",
                        "fxRate": 105.0,
                        "govIncentive": {"effectiveFxRate": 105.0, "footnote": "n/a"},
                        "feeSchedule": {
                            "type": "tiered",
                            "tiers": [
                                {"minValue": 0, "fee": 5},
                                {"minValue": 50, "fee": 3},
                                {"minValue": 200, "fee": 1},
                            ],
                        },
                    }
                ],
            },
            {"currency": "CAD", "countryDisplayName": "Canada"},
            None,
        ]
    }
