"""
Core - Domain model, ports and exceptions.
"""
