"""Classroom attendance package.

Organized by feature modules (sessions, attendance, realtime, ...) with a thin
Flask controller layer on top of service/repository layers.
"""
