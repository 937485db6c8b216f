"""Summarization request pipeline."""
