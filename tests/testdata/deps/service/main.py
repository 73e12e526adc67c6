"""
@title    Widgets API
@version  2.0
"""
