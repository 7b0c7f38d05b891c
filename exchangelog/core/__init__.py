"""
Core building blocks: settings, exceptions, the log sink and the handler registry.
"""
