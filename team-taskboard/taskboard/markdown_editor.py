from __future__ import annotations

import re
from typing import Dict

DEFAULT_MARKDOWN = """# Welcome to the Markdown Editor!

## Features
- Live preview
- Syntax highlighting
- Side-by-side view
- Clean design

Try editing this text to see the live preview!

```python
# Code blocks are supported too!
def hello():
    print("Hello, world!")
```
"""

_HEADING_RE = re.compile(r"^#{1,6}\s+\S")
_FENCE_RE = re.compile(r"^(```|~~~)")


def document_stats(text: str) -> Dict[str, int]:
    """Word, line, heading and code block counts. Headings inside code fences are ignored."""
    text = text or ""
    lines = text.splitlines()
    headings = 0
    code_blocks = 0
    in_fence = False
    for line in lines:
        stripped = line.strip()
        if _FENCE_RE.match(stripped):
            if not in_fence:
                code_blocks += 1
            in_fence = not in_fence
            continue
        if not in_fence and _HEADING_RE.match(stripped):
            headings += 1
    return {
        "words": len(text.split()),
        "lines": len(lines),
        "headings": headings,
        "code_blocks": code_blocks,
    }
