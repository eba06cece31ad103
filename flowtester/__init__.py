"""LLM-guided website flow tester"""
