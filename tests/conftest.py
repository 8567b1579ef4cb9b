"""Shared fixtures for librarian tests."""

import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "src"))

# foo is defined on line 10
BAR_TS = """import { readFile } from "fs";

export interface Options {
  verbose: boolean;
}

const DEFAULT_NAME = "bar";

// Returns the default name
export function foo(): string {
  return DEFAULT_NAME;
}

export class Greeter extends Base {
  greet(name: string): string {
    return `hello ${name}`;
  }
}
"""

GREETER_TEST_TS = """import { Greeter } from "../src/bar";

describe("Greeter", () => {
  describe("greet", () => {
    it("returns a greeting with the name", () => {
      const greeter = new Greeter();
      expect(greeter.greet("ada")).toBe("hello ada");
    });

    it("handles an empty name", () => {
      const greeter = new Greeter();
      expect(greeter.greet("")).toBe("hello ");
    });
  });
});
"""

CACHE_PY = """class Cache:
    def __init__(self, size: int = 10):
        self.size = size

    def get(self, key: str) -> str:
        return key
"""

TEST_CACHE_PY = """from cache import Cache


class TestCache:
    def test_get_returns_key(self):
        cache = Cache()
        assert cache.get("a") == "a"

    def test_size_default(self):
        assert Cache().size == 10


def test_module_level():
    assert True
"""


def write_files(root, files):
    """Write {relative path: content} under root."""
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    return root


@pytest.fixture
def sample_repo(tmp_path):
    """Repository with one TypeScript module and no tests."""
    return write_files(tmp_path / "repo", {"src/bar.ts": BAR_TS})


@pytest.fixture
def tested_repo(tmp_path):
    """Repository with sources and JS and Python test files."""
    return write_files(
        tmp_path / "tested",
        {
            "src/bar.ts": BAR_TS,
            "tests/greeter.test.ts": GREETER_TEST_TS,
            "cache.py": CACHE_PY,
            "tests/test_cache.py": TEST_CACHE_PY,
            "node_modules/lib/ignored.test.js": 'it("is ignored", () => {});\n',
        },
    )
