"""
Base prompt template class.
"""

import string
from dataclasses import dataclass


@dataclass
class PromptTemplate:
    """
    A prompt template with ``{placeholders}``; literal braces are doubled.

    Usage:
        template = PromptTemplate(template="Score this: {content}", description="Scoring")
        prompt = template.format(content="...")
    """
    template: str
    description: str = ""

    @property
    def fields(self) -> set[str]:
        return {name for _, name, _, _ in string.Formatter().parse(self.template) if name}

    def format(self, **kwargs) -> str:
        """Format the template; missing fields raise KeyError naming them."""
        missing = self.fields - set(kwargs)
        if missing:
            raise KeyError(f"Missing prompt fields for {self.description or 'template'}: {sorted(missing)}")
        return self.template.format(**kwargs)

    def __str__(self) -> str:
        return f"PromptTemplate({self.description})"
