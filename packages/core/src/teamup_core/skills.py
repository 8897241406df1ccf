"""Skill taxonomy: maps languages and repository topics to skill labels."""

import re
from typing import Iterable

# Language -> skill labels
LANGUAGE_TO_SKILLS: dict[str, list[str]] = {
    "JavaScript": ["JavaScript", "Node.js", "React", "Vue.js", "Express.js"],
    "TypeScript": ["TypeScript", "React", "Node.js", "Angular"],
    "Python": ["Python", "Django", "Flask", "Machine Learning", "Data Science"],
    "Jupyter Notebook": ["Python", "Data Science", "Machine Learning"],
    "Java": ["Java", "Spring Boot", "Android"],
    "Kotlin": ["Kotlin", "Android"],
    "Swift": ["Swift", "iOS Development"],
    "Objective-C": ["Objective-C", "iOS Development"],
    "Go": ["Go", "Golang", "Backend Development"],
    "Rust": ["Rust", "Systems Programming"],
    "C++": ["C++", "Systems Programming", "Game Development"],
    "C#": ["C#", ".NET", "Unity", "Game Development"],
    "Ruby": ["Ruby", "Ruby on Rails"],
    "PHP": ["PHP", "Laravel", "WordPress"],
    "Elixir": ["Elixir", "Phoenix", "Backend Development"],
    "Haskell": ["Haskell", "Functional Programming"],
    "Lua": ["Lua", "Game Development"],
    "HTML": ["HTML", "Web Development", "Frontend"],
    "CSS": ["CSS", "Web Development", "Frontend", "Tailwind CSS"],
    "SCSS": ["CSS", "SASS", "Frontend"],
    "Vue": ["Vue.js", "JavaScript", "Frontend"],
    "Svelte": ["Svelte", "JavaScript", "Frontend"],
    "Dart": ["Dart", "Flutter", "Mobile Development"],
    "Scala": ["Scala", "Big Data", "Spark"],
    "R": ["R", "Data Science", "Statistics"],
    "Julia": ["Julia", "Scientific Computing", "Data Science"],
    "Solidity": ["Solidity", "Blockchain", "Smart Contracts"],
    "Shell": ["Shell", "DevOps", "Linux", "Bash"],
    "Dockerfile": ["Docker", "DevOps", "Containers"],
    "HCL": ["Terraform", "DevOps", "Infrastructure as Code"],
}

# Repository topic (lower-case) -> skill labels
TOPIC_TO_SKILLS: dict[str, list[str]] = {
    "react": ["React", "JavaScript", "Frontend"],
    "reactjs": ["React", "JavaScript", "Frontend"],
    "react-native": ["React Native", "Mobile Development"],
    "nextjs": ["Next.js", "React", "Full Stack"],
    "vue": ["Vue.js", "JavaScript", "Frontend"],
    "vuejs": ["Vue.js", "JavaScript", "Frontend"],
    "angular": ["Angular", "TypeScript", "Frontend"],
    "svelte": ["Svelte", "JavaScript", "Frontend"],
    "nodejs": ["Node.js", "JavaScript", "Backend"],
    "express": ["Express.js", "Node.js", "Backend"],
    "django": ["Django", "Python", "Backend"],
    "flask": ["Flask", "Python", "Backend"],
    "fastapi": ["FastAPI", "Python", "Backend"],
    "spring": ["Spring Boot", "Java", "Backend"],
    "spring-boot": ["Spring Boot", "Java", "Backend"],
    "rails": ["Ruby on Rails", "Ruby", "Backend"],
    "laravel": ["Laravel", "PHP", "Backend"],
    "graphql": ["GraphQL", "API Development"],
    "rest-api": ["REST API", "Backend"],
    "docker": ["Docker", "DevOps", "Containers"],
    "kubernetes": ["Kubernetes", "DevOps", "Cloud"],
    "aws": ["AWS", "Cloud", "DevOps"],
    "gcp": ["Google Cloud", "Cloud", "DevOps"],
    "azure": ["Azure", "Cloud", "DevOps"],
    "machine-learning": ["Machine Learning", "AI", "Data Science"],
    "deep-learning": ["Deep Learning", "AI", "Machine Learning"],
    "tensorflow": ["TensorFlow", "Machine Learning", "Python"],
    "pytorch": ["PyTorch", "Machine Learning", "Python"],
    "data-science": ["Data Science", "Python", "Statistics"],
    "flutter": ["Flutter", "Dart", "Mobile Development"],
    "ios": ["iOS Development", "Swift"],
    "android": ["Android", "Kotlin", "Java"],
    "unity": ["Unity", "Game Development", "C#"],
    "unreal": ["Unreal Engine", "Game Development", "C++"],
    "tailwindcss": ["Tailwind CSS", "CSS", "Frontend"],
    "tailwind": ["Tailwind CSS", "CSS", "Frontend"],
    "mongodb": ["MongoDB", "NoSQL", "Database"],
    "postgresql": ["PostgreSQL", "SQL", "Database"],
    "mysql": ["MySQL", "SQL", "Database"],
    "redis": ["Redis", "Caching", "Database"],
    "firebase": ["Firebase", "Backend", "Cloud"],
    "supabase": ["Supabase", "Backend", "Database"],
    "prisma": ["Prisma", "ORM", "Database"],
    "typescript": ["TypeScript", "JavaScript"],
    "blockchain": ["Blockchain", "Web3", "Solidity"],
    "solidity": ["Solidity", "Blockchain", "Smart Contracts"],
    "web3": ["Web3", "Blockchain", "Ethereum"],
}

_QUALIFIER_RE = re.compile(r"\([^)]*\)")
_SEPARATOR_RE = re.compile(r"[.\-_\s]+")


def normalize_skill_name(skill: str) -> str:
    """Comparison key for a skill label.

    Case-insensitive, with parenthetical qualifiers and separators removed:
    ``"React (Hooks)"`` and ``"react"`` share a key, as do ``"Node.js"``
    and ``"nodejs"``.
    """
    without_qualifiers = _QUALIFIER_RE.sub(" ", skill)
    return _SEPARATOR_RE.sub("", without_qualifiers.lower().strip())


def skills_match(first: str, second: str) -> bool:
    return normalize_skill_name(first) == normalize_skill_name(second)


def infer_skills(languages: Iterable[str], topics: Iterable[str]) -> list[str]:
    """Union of skill labels for all recognized languages and topics.

    Unrecognized entries are ignored. Inputs are sorted first, so the
    result is deterministic for a given set of signals.
    """
    inferred: dict[str, None] = {}

    for language in sorted(set(languages)):
        for skill in LANGUAGE_TO_SKILLS.get(language, []):
            inferred.setdefault(skill, None)

    for topic in sorted({t.lower() for t in topics}):
        for skill in TOPIC_TO_SKILLS.get(topic, []):
            inferred.setdefault(skill, None)

    return list(inferred)


def match_verified_skills(declared: Iterable[str], inferred: Iterable[str]) -> list[str]:
    """Declared skills supported by the inferred set, in declared order.

    Returned names keep the user's own spelling; duplicates (by key) are
    collapsed to their first occurrence.
    """
    inferred_keys = {normalize_skill_name(s) for s in inferred}
    inferred_keys.discard("")

    verified: list[str] = []
    seen: set[str] = set()
    for skill in declared:
        key = normalize_skill_name(skill)
        if key and key in inferred_keys and key not in seen:
            seen.add(key)
            verified.append(skill)
    return verified


def skills_drifted(current: Iterable[str], at_verification: Iterable[str]) -> bool:
    """Whether the declared skill set changed, compared case-insensitively."""
    current_set = {s.lower().strip() for s in current}
    snapshot_set = {s.lower().strip() for s in at_verification}
    return current_set != snapshot_set
