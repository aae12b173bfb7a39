"""
Languages CodeSnap offers as syntax hints.

The server does not validate `language` against this list; it is served to
the front-end (GET /api/languages) and used to pick download extensions.
"""

SUPPORTED_LANGUAGES = [
    {"name": "Plain Text", "value": "plaintext"},
    {"name": "JavaScript", "value": "javascript"},
    {"name": "TypeScript", "value": "typescript"},
    {"name": "HTML", "value": "html"},
    {"name": "CSS", "value": "css"},
    {"name": "Python", "value": "python"},
    {"name": "Java", "value": "java"},
    {"name": "C", "value": "c"},
    {"name": "C++", "value": "cpp"},
    {"name": "C#", "value": "csharp"},
    {"name": "Go", "value": "go"},
    {"name": "Rust", "value": "rust"},
    {"name": "PHP", "value": "php"},
    {"name": "Ruby", "value": "ruby"},
    {"name": "Bash", "value": "bash"},
    {"name": "SQL", "value": "sql"},
]

FILE_EXTENSIONS = {
    "javascript": ".js",
    "typescript": ".ts",
    "html": ".html",
    "css": ".css",
    "python": ".py",
    "java": ".java",
    "c": ".c",
    "cpp": ".cpp",
    "csharp": ".cs",
    "go": ".go",
    "rust": ".rs",
    "php": ".php",
    "ruby": ".rb",
    "bash": ".sh",
    "sql": ".sql",
}


def extension_for(language: str) -> str:
    """Download extension for a language; unknown languages get .txt."""
    return FILE_EXTENSIONS.get(language, ".txt")
