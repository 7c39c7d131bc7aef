"""Grounds domain - bookable venues and their availability endpoints"""
