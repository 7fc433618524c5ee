"""Markup extraction: pasted component snippets -> component descriptors.

- locator.py: finds <Tag ...>...</Tag> and <Tag ... /> spans
- attributes.py: single-pass attribute tokenizer producing typed values
- scanner.py: nested heading/text/action scanning and descriptors
- kinds.py: the fixed set of logical component kinds
"""
