"""
Services module for JabClub API

This module includes all service-related modules, which implement the business logic of the application:
schedule generation, the credit ledger, bookings and attendance.
"""

# Inicializador del paquete services
