"""Semantic memory: vector collections for transactions and chat turns"""
