"""
Exam Portal - structured exam grading.

This package grades single-choice, multi-choice and fill-in-the-blank
exams deterministically, stores one submission per user and exam, and
builds the per-option review shown to students afterwards.
"""

__version__ = "1.0.0"
__author__ = "Exam Portal Team"
