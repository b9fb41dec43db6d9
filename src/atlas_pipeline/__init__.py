"""Reconciled language, locale and territory graph with population estimates."""
