"""Booking domain services.

Each service wraps one or more repositories, or one third-party API
(Firebase, Razorpay, Cloudinary, TMDB, SMTP), and raises ``ServiceError``
subclasses that routers turn into HTTP errors.
"""
