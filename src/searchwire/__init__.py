"""searchwire - an MCP tool server for Azure AI Search.

Tool calls run through a shared pipeline: parameter validation,
elicitation of missing input, deadline enforcement, insight
classification of failures, and budgeted response shaping.
"""

__version__ = "0.3.0"
