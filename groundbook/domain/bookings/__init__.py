"""Bookings domain - lifecycle, command handlers and booking endpoints"""
