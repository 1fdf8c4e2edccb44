"""Textual front end: the console widget and a one-command app around it."""
