from .urls import UrlsRepository

__all__ = ["UrlsRepository"]
