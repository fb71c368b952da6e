"""Sample users for the demo store: providers with declared availability or clinic slots, and requesters."""

import copy
from typing import Any

from carecoord.utils import split_path

SEED_USERS: dict[str, dict[str, Any]] = {
    "uid-paramedic-1": {
        "name": "Asha Verma",
        "email": "asha.verma@example.com",
        "role": "paramedic",
        "rating": 4.8,
        "experience": 7,
        "specialization": "Home Care",
        "availability": {
            "days": ["Monday", "Wednesday", "Thursday"],
            "startTime": "09:00",
            "endTime": "18:00",
        },
        "serviceArea": {"city": "Pune", "state": "Maharashtra", "pincode": "411001"},
    },
    "uid-paramedic-2": {
        "name": "Rahul Nair",
        "email": "rahul.nair@example.com",
        "role": "paramedic",
        "rating": 4.5,
        "experience": 4,
        "specialization": "Post Surgery Care",
        "availability": {
            "days": ["Monday", "Tuesday", "Friday"],
            "startTime": "09:00",
            "endTime": "17:00",
        },
        "serviceArea": {"city": "Pune", "state": "Maharashtra", "pincode": "411004"},
    },
    "uid-paramedic-3": {
        "name": "Meera Iyer",
        "email": "meera.iyer@example.com",
        "role": "paramedic",
        "rating": 4.9,
        "experience": 11,
        "specialization": "Emergency Care",
        "availability": {
            "days": ["Saturday", "Sunday"],
            "startTime": "08:00",
            "endTime": "20:00",
        },
        "serviceArea": {"city": "Mumbai", "state": "Maharashtra", "pincode": "400001"},
    },
    "uid-doctor-1": {
        "name": "Dr. Kabir Shah",
        "email": "kabir.shah@example.com",
        "role": "doctor",
        "rating": 4.7,
        "specialization": "General Medicine",
        # stored the way the realtime store keeps arrays: a map keyed by index
        "clinicAddresses": {
            "0": {
                "address": "4 FC Road",
                "city": "Pune",
                "state": "Maharashtra",
                "pincode": "411004",
                "timings": {
                    "days": ["Monday", "Wednesday", "Friday"],
                    "startTime": "10:00",
                    "endTime": "13:00",
                },
                "slots": {
                    "slot-b": {
                        "slotNumber": 2, "startTime": "10:30", "endTime": "11:00",
                        "duration": 30, "price": 500,
                    },
                    "slot-a": {
                        "slotNumber": 1, "startTime": "10:00", "endTime": "10:30",
                        "duration": 30, "price": 500,
                    },
                    "slot-c": {
                        "slotNumber": 3, "startTime": "11:00", "endTime": "11:30",
                        "duration": 30, "price": 500, "isBooked": True,
                    },
                },
            },
        },
    },
    "uid-customer-1": {
        "name": "Priya Desai",
        "email": "priya.desai@example.com",
        "role": "customer",
    },
    "uid-customer-2": {
        "name": "Arjun Rao",
        "email": "arjun.rao@example.com",
        "role": "customer",
    },
    "uid-admin-1": {
        "name": "Ops Admin",
        "email": "admin@example.com",
        "role": "admin",
    },
}


def seed_tree(users_path: str = "users") -> dict[str, Any]:
    """Initial store contents holding a fresh copy of SEED_USERS at ``users_path``."""
    tree: dict[str, Any] = copy.deepcopy(SEED_USERS)
    for segment in reversed(split_path(users_path)):
        tree = {segment: tree}
    return tree
