# pantrychef/tests/conftest.py
import re
import threading
import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Any, Dict, List

import pytest
from postgrest.exceptions import APIError

from pantrychef.models.schemas import RecipeCandidate


# --- Fake Supabase client (PostgREST-style chaining over in-memory tables) ---
CHILD_TABLES = {"ingredients", "recipe_steps", "recipe_tags"}
_EMBED_RE = re.compile(r"(\w+)\(([^)]*)\)")
_UUID_COLUMNS = {"id", "user_id", "recipe_id"}
_BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _is_uuid(value: Any) -> bool:
    try:
        uuid.UUID(str(value))
        return True
    except ValueError:
        return False


def _like_to_regex(pattern: str):
    # PostgREST turns `*` into `%` before the pattern reaches Postgres
    out = []
    i = 0
    while i < len(pattern):
        ch = pattern[i]
        if ch == "\\" and i + 1 < len(pattern):
            out.append(re.escape(pattern[i + 1]))
            i += 2
            continue
        if ch in "%*":
            out.append(".*")
        elif ch == "_":
            out.append(".")
        else:
            out.append(re.escape(ch))
        i += 1
    return re.compile("".join(out), re.IGNORECASE | re.DOTALL)


def _columns(spec: str) -> List[str]:
    return [c.strip() for c in spec.split(",") if c.strip()]


def _project(row: Dict[str, Any], columns: List[str]) -> Dict[str, Any]:
    if "*" in columns:
        return dict(row)
    return {c: row.get(c) for c in columns}


class FakeQuery:

    def __init__(self, db, name):
        self.db = db
        self.name = name
        self._select = "*"
        self._filters = []
        self._order = None
        self._limit = None
        self._operation = None

    # Query building (chainable)
    def select(self, columns="*", **kwargs):
        self._select = columns
        return self

    def eq(self, col, val):
        self._filters.append(("eq", col, val))
        return self

    def ilike(self, col, pattern):
        self._filters.append(("ilike", col, pattern))
        return self

    def in_(self, col, values):
        self._filters.append(("in", col, list(values)))
        return self

    def order(self, col, desc=False):
        self._order = (col, desc)
        return self

    def limit(self, n):
        self._limit = n
        return self

    def insert(self, payload):
        self._operation = ("insert", payload)
        return self

    def delete(self):
        self._operation = ("delete", None)
        return self

    # Execution
    def _check_filter_values(self):
        for op, col, val in self._filters:
            values = val if op == "in" else [val]
            if col in _UUID_COLUMNS and op != "ilike":
                for v in values:
                    if not _is_uuid(v):
                        raise APIError(
                            {
                                "code": "22P02",
                                "message": f'invalid input syntax for type uuid: "{v}"',
                            }
                        )

    def _matches(self, row):
        for op, col, val in self._filters:
            current = row.get(col)
            if op == "eq" and str(current) != str(val):
                return False
            if op == "in" and str(current) not in {str(v) for v in val}:
                return False
            if op == "ilike" and not _like_to_regex(val).fullmatch(str(current or "")):
                return False
        return True

    def _embed(self, row):
        plain = _EMBED_RE.sub("", self._select)
        out = _project(row, _columns(plain))
        for child, child_cols in _EMBED_RE.findall(self._select):
            children = [
                _project(c, _columns(child_cols))
                for c in self.db.tables.get(child, [])
                if str(c.get("recipe_id")) == str(row.get("id"))
            ]
            out[child] = children
        return out

    def execute(self):
        with self.db.lock:
            op = self._operation[0] if self._operation else "select"
            self.db.calls.append((op, self.name))
            failure = self.db.failures.get((op, self.name))
            if failure is not None:
                raise failure
            self._check_filter_values()
            if op == "insert":
                return SimpleNamespace(data=self._insert(self._operation[1]))
            if op == "delete":
                return SimpleNamespace(data=self._delete())
            return SimpleNamespace(data=self._select_rows())

    def _select_rows(self):
        rows = [r for r in self.db.tables.get(self.name, []) if self._matches(r)]
        if self._order:
            col, desc = self._order
            rows = sorted(rows, key=lambda r: (r.get(col) is None, r.get(col)), reverse=desc)
        if self._limit is not None:
            rows = rows[: self._limit]
        return [self._embed(r) for r in rows]

    def _insert(self, payload):
        rows = [dict(p) for p in (payload if isinstance(payload, list) else [payload])]
        table = self.db.tables.setdefault(self.name, [])
        # validate the whole statement before writing, like a single INSERT
        for row in rows:
            if self.name in CHILD_TABLES or self.name == "saved_recipes":
                if not any(str(r["id"]) == str(row.get("recipe_id")) for r in self.db.tables.get("recipes", [])):
                    raise APIError(
                        {"code": "23503", "message": "insert violates foreign key constraint"}
                    )
            if self.name == "saved_recipes":
                pair = (str(row.get("user_id")), str(row.get("recipe_id")))
                if any((str(r["user_id"]), str(r["recipe_id"])) == pair for r in table):
                    raise APIError(
                        {
                            "code": "23505",
                            "message": 'duplicate key value violates unique constraint "saved_recipes_user_recipe_uc"',
                        }
                    )
        for row in rows:
            row.setdefault("id", str(uuid.uuid4()))
            if self.name in ("recipes", "saved_recipes"):
                row.setdefault("created_at", self.db.next_timestamp())
            table.append(row)
        return [dict(r) for r in rows]

    def _delete(self):
        kept, deleted = [], []
        for r in self.db.tables.get(self.name, []):
            (deleted if self._matches(r) else kept).append(r)
        self.db.tables[self.name] = kept
        if self.name == "recipes":
            gone = {str(r["id"]) for r in deleted}
            for child in CHILD_TABLES | {"saved_recipes"}:
                self.db.tables[child] = [
                    c for c in self.db.tables.get(child, []) if str(c.get("recipe_id")) not in gone
                ]
        return deleted


class FakeAuth:

    def __init__(self):
        self.tokens: Dict[str, str] = {}

    def get_user(self, jwt=None):
        if jwt not in self.tokens:
            raise Exception("invalid JWT")
        return SimpleNamespace(user=SimpleNamespace(id=self.tokens[jwt]))


class FakeDB:

    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.failures: Dict[Any, Exception] = {}
        self.calls: List[Any] = []
        self.lock = threading.RLock()
        self.auth = FakeAuth()
        self._ticks = 0

    def table(self, name):
        return FakeQuery(self, name)

    def next_timestamp(self) -> str:
        self._ticks += 1
        return (_BASE_TIME + timedelta(minutes=self._ticks)).isoformat()

    def fail(self, op, table, code="XX000", message="simulated store failure"):
        self.failures[(op, table)] = APIError({"code": code, "message": message})

    def rows(self, table):
        return self.tables.get(table, [])


@pytest.fixture
def fake_db():
    return FakeDB()


@pytest.fixture
def user_id():
    return str(uuid.uuid4())


@pytest.fixture
def other_user_id():
    return str(uuid.uuid4())


# --- Recipe payloads ---
@pytest.fixture
def recipe_payload():
    """A generation-service recipe object (camelCase keys)."""
    return {
        "title": "Garlic Butter Chicken",
        "description": "Pan-seared chicken in a garlicky butter sauce.",
        "ingredients": [
            {"name": "chicken thighs", "quantity": "4", "unit": "pieces"},
            {"name": "garlic", "quantity": 6, "unit": "cloves"},
            {"name": "butter", "quantity": "3", "unit": "tbsp"},
            {"name": "salt", "quantity": "to taste", "unit": ""},
        ],
        "steps": [
            "Season the chicken with salt.",
            "Sear skin-side down until golden.",
            "Add butter and garlic, baste for 5 minutes.",
        ],
        "cookTime": 30,
        "servings": 4,
        "difficulty": "easy",
        "tags": ["chicken", "dinner", "quick"],
        "nutritionInfo": {"calories": 420, "protein": "32g", "carbs": "2g", "fats": "30g"},
    }


@pytest.fixture
def candidate(recipe_payload):
    return RecipeCandidate.model_validate(recipe_payload)


@pytest.fixture
def seed_recipe(fake_db, user_id):
    """Insert a recipe row (plus optional children) straight into the fake store."""

    def _seed(title, owner=None, steps=None, tags=None, ingredients=None, **fields):
        recipe = FakeQuery(fake_db, "recipes").insert(
            {"user_id": owner or user_id, "title": title, **fields}
        ).execute().data[0]
        rid = recipe["id"]
        for number, instruction in steps or []:
            fake_db.tables.setdefault("recipe_steps", []).append(
                {"id": str(uuid.uuid4()), "recipe_id": rid, "step_number": number, "instruction": instruction}
            )
        for tag in tags or []:
            fake_db.tables.setdefault("recipe_tags", []).append(
                {"id": str(uuid.uuid4()), "recipe_id": rid, "tag": tag}
            )
        for index, name in ingredients or []:
            fake_db.tables.setdefault("ingredients", []).append(
                {"id": str(uuid.uuid4()), "recipe_id": rid, "name": name, "quantity": "1", "unit": "", "order_index": index}
            )
        return rid

    return _seed


# --- Patch OpenAI client object shape used by our code ---
class DummyOpenAI:

    def __init__(self, content):
        self.content = content
        self.requests = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def _create(self, *args, **kwargs):
        self.requests.append(kwargs)
        # Return object similar to SDK: .choices list with .message.content
        return SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=self.content))]
        )


@pytest.fixture
def dummy_openai():
    return DummyOpenAI
