"""Roadmap domain - Read access to guardrails projects, tracks and roadmap items"""
