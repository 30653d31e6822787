"""
Niches Hunter Daily Newsletter Bot

A daily automated email bot that picks unfeatured app opportunities, asks an
LLM to spot two indie-friendly niches, and emails the result to subscribers.
"""

__version__ = "1.0.0"
