"""
Discord trivia quiz bot: timed multiple-choice questions from Open Trivia DB.
"""
