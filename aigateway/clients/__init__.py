"""HTTP clients for upstream AI providers."""

from aigateway.clients.blog_writer_client import BlogWriterClient, BlogWriterError
from aigateway.clients.service_client import ServiceClient

__all__ = ["ServiceClient", "BlogWriterClient", "BlogWriterError"]
