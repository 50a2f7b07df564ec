from .request import HttpRequest, HttpService

__all__ = ["HttpRequest", "HttpService"]
