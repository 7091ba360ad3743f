"""
MCQ Shuffle Engine
==================
Parsing, validation and shuffling of multiple choice exams written as
plain text.

Architecture:
    - Text Parser: Turns pasted exam text into a flat, ordered row model
    - Validator: Checks the row sequence against the section/question/answer grammar
    - Shuffle Engine: Reorders sections, questions and answers around locked rows
    - Answer Key: Parses "1. B" style keys and merges them into the rows
    - Generator: Renders exam text, HTML, answer key and answer sheet

Version: 1.0.0
"""

__version__ = "1.0.0"
