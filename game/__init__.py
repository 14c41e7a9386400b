"""Core game domain package for First 48.

- Case content and keyword tables (`case_data`, `lexicon`)
- Signal extraction and classification (`signals`, `classifier`)
- Conversation, investigation, lab and trial engines
- Session state, persistence and turn orchestration
"""
