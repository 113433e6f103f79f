"""
streamchat - Streaming Chat Gateway

Delivers conversational answers from pluggable language-model backends
over Server-Sent Events, and separates the visible answer, the reasoning
trace and tool-call records on the client side.
"""

__version__ = "1.0.0"
__author__ = "streamchat"
