"""Resolvers against a live target schema.

- core.py: canonical property name -> decorated live property name
- text.py: picks the text leaf that receives a text value
"""
