"""
Service layer: order domain logic and change notification.
"""
