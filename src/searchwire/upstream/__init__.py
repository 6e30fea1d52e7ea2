"""Clients for the services behind the tools."""

from .search_client import SearchServiceClient
from .summarizer import AzureOpenAISummarizer, build_summarizer

__all__ = ["AzureOpenAISummarizer", "SearchServiceClient", "build_summarizer"]
