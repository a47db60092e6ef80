from .rate_limiting import RateLimiter, client_ip_identifier

__all__ = ["RateLimiter", "client_ip_identifier"]
