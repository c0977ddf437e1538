"""Built-in delivery zones used by the "restore defaults" admin action."""

_MITHI_MAIN_HOURS = {
    "monday": {"open": "11:00", "close": "23:00"},
    "tuesday": {"open": "11:00", "close": "23:00"},
    "wednesday": {"open": "11:00", "close": "23:00"},
    "thursday": {"open": "11:00", "close": "23:00"},
    "friday": {"open": "11:00", "close": "23:30"},
    "saturday": {"open": "11:00", "close": "23:30"},
    "sunday": {"open": "11:00", "close": "23:00"},
}

_ISLAMKOT_ROAD_HOURS = {
    "monday": {"open": "11:00", "close": "22:30"},
    "tuesday": {"open": "11:00", "close": "22:30"},
    "wednesday": {"open": "11:00", "close": "22:30"},
    "thursday": {"open": "11:00", "close": "22:30"},
    "friday": {"open": "11:00", "close": "23:00"},
    "saturday": {"open": "11:00", "close": "23:00"},
    "sunday": {"open": "11:00", "close": "22:30"},
}

DEFAULT_ZONES = [
    {
        "name": "Mithi Central",
        "center_latitude": 24.7337,
        "center_longitude": 69.7967,
        "radius_km": 1.5,
        "base_fee": 30,
        "min_order_amount": 300,
        "max_delivery_time": 30,
        "per_km_surcharge": None,
        "operating_hours": _MITHI_MAIN_HOURS,
        "priority": 0,
    },
    {
        "name": "Islamkot Road",
        "center_latitude": 24.7385,
        "center_longitude": 69.8012,
        "radius_km": 2.0,
        "base_fee": 50,
        "min_order_amount": 400,
        "max_delivery_time": 40,
        "per_km_surcharge": None,
        "operating_hours": _ISLAMKOT_ROAD_HOURS,
        "priority": 1,
    },
    {
        "name": "Mithi Outskirts",
        "center_latitude": 24.7337,
        "center_longitude": 69.7967,
        "radius_km": 6.0,
        "base_fee": 100,
        "min_order_amount": 500,
        "max_delivery_time": 60,
        "per_km_surcharge": 10,
        "operating_hours": _MITHI_MAIN_HOURS,
        "priority": 2,
    },
]
