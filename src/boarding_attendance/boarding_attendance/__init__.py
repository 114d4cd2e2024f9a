"""Boarding Attendance package.

This package is organized by feature modules (reports, meals deadlines, duty,
permissions, students, users) with a thin Flask controller layer and
service/repository layers underneath.
"""
