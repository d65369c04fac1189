"""
Tests for the LLM classification module.
"""
