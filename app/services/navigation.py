"""
Role-based navigation menus.
"""
from typing import List, Dict


BACK_OFFICE_MENU = [
    {"title": "Dashboard", "path": "/"},
    {"title": "Calendar", "path": "/calendar"},
    {"title": "Analytics", "path": "/analytics"},
    {"title": "Gigs", "path": "/gigs"},
    {"title": "Invoices", "path": "/invoices"},
    {"title": "Files", "path": "/files"},
    {"title": "Personnel", "path": "/personnel"},
    {"title": "Customers", "path": "/customers"},
    {"title": "Venues", "path": "/venues"},
    {"title": "Contacts", "path": "/contacts"},
]

OWNER_EXTRA_MENU = [
    {"title": "Settings", "path": "/settings"},
]

PERSONNEL_MENU = [
    {"title": "My Profile", "path": "/my-profile"},
    {"title": "Check In/Out", "path": "/check-in"},
    {"title": "My Gigs", "path": "/my-gigs"},
    {"title": "My Payouts", "path": "/my-payouts"},
    {"title": "My Documents", "path": "/my-documents"},
]


def menu_for_role(role: str) -> List[Dict[str, str]]:
    if role == "owner":
        return BACK_OFFICE_MENU + OWNER_EXTRA_MENU
    if role == "manager":
        return list(BACK_OFFICE_MENU)
    if role == "personnel":
        return list(PERSONNEL_MENU)
    return []
