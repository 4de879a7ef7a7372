#!/usr/bin/env python3
"""lsystem_engine.py

A generic, parametric L-system rewriting engine.

Key features:
- Per-symbol rules with default replacement text and optional production functions.
- Parenthesised parameters (with ``\\)`` escaping) handed to production functions.
- Branch-scoped state via push/pop.
- Parameter carry-over: a production may hand parameters to the next symbol.
- A seeded random sequence shared by every generation of an engine.
- JSON-based configuration and a small CLI.

Run:
  python lsystem_engine.py derive config.json --generations 3
  python lsystem_engine.py validate config.json
  python lsystem_engine.py random out.json --seed 123
  python lsystem_engine.py --help
"""

from __future__ import annotations

import argparse
import copy
import json
import logging
import math
import os
import random
import sys
from collections.abc import Callable, Generator, Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Literal, Union, cast

logger = logging.getLogger(__name__)

Token = str
Axiom = list[Token]


# -------------------------
# Errors / Validation
# -------------------------


class LSystemError(ValueError):
    pass


class ConfigError(LSystemError):
    pass


class DuplicateRuleError(ConfigError):
    pass


class DerivationError(LSystemError):
    """A derivation was aborted. The engine's axiom and generation are unchanged."""


class UnbalancedScopeError(DerivationError):
    pass


class UnterminatedParameterError(DerivationError):
    pass


def _require(cond: bool, msg: str) -> None:
    if not cond:
        raise ConfigError(msg)


def _as_int(x: Any, path: str) -> int:
    _require(
        isinstance(x, int) and not isinstance(x, bool), f"{path} must be an integer"
    )
    return int(x)


def _as_str(x: Any, path: str) -> str:
    _require(isinstance(x, str), f"{path} must be a string")
    return cast(str, x)


def _as_dict(x: Any, path: str) -> dict[str, Any]:
    _require(isinstance(x, dict), f"{path} must be an object")
    return cast(dict[str, Any], x)


def _lookup(obj: Any, name: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


# -------------------------
# Token codec
# -------------------------

GROUP_OPEN = "("
GROUP_CLOSE = ")"
ESCAPE = "\\"
PUSH = "["
POP = "]"
SENTINEL = "."

TokenKind = Literal["symbol", "group_open", "group_close", "escape", "push", "pop"]

_TOKEN_KINDS: dict[Token, TokenKind] = {
    GROUP_OPEN: "group_open",
    GROUP_CLOSE: "group_close",
    ESCAPE: "escape",
    PUSH: "push",
    POP: "pop",
}

# Tokens the engine consumes itself; they can never dispatch to a rule.
_STRUCTURAL = frozenset((GROUP_OPEN, GROUP_CLOSE, PUSH, POP))


def classify(token: Token) -> TokenKind:
    return _TOKEN_KINDS.get(token, "symbol")


def decode(text: str | Iterable[str]) -> Axiom:
    """Split text into one token per character.

    Escapes are not interpreted here; they only matter while a parameter is
    being collected during a derivation.
    """
    if not isinstance(text, str):
        text = "".join(text)
    return list(text)


def encode(parameters: Iterable[Any], axiom: Axiom | None = None) -> Axiom:
    """Render parameters as ``(a)(b)...`` tokens, escaping ``)`` as ``\\)``.

    Examples:
      ["a", "b", "c"] -> "(a)(b)(c)"
      ["(a)", "bc"]   -> "((a\\))(bc)"

    Bytes parameters are decoded as UTF-8.
    """
    out = axiom if axiom is not None else []
    for param in parameters:
        out.append(GROUP_OPEN)
        if isinstance(param, bytes):
            param = param.decode("utf-8")
        for ch in str(param):
            if ch == GROUP_CLOSE:
                out.append(ESCAPE)
            out.append(ch)
        out.append(GROUP_CLOSE)
    return out


def render(tokens: Iterable[Token]) -> str:
    return "".join(tokens)


@dataclass
class ParameterCollector:
    """Collects the text of one ``(...)`` group, token by token."""

    buffer: list[Token] | None = None

    @property
    def collecting(self) -> bool:
        return self.buffer is not None

    def start(self) -> None:
        self.buffer = []

    def feed(self, token: Token) -> str | None:
        """Feed one token; return the parameter once its group is closed."""
        buf = self.buffer
        if buf is None:
            raise RuntimeError("feed() called before start()")

        # A ")" right after "(" is literal, and "\)" is an escaped ")".
        if token != GROUP_CLOSE or not buf:
            buf.append(token)
            return None
        if buf[-1] == ESCAPE:
            buf[-1] = token
            return None

        self.buffer = None
        return "".join(buf)


def parse_parameters(text: str | Iterable[str]) -> list[str]:
    """Collect every parameter of a pure parameter text such as ``(a)(b\\))``."""
    collector = ParameterCollector()
    params: list[str] = []
    for token in decode(text):
        if collector.collecting:
            param = collector.feed(token)
            if param is not None:
                params.append(param)
        elif token == GROUP_OPEN:
            collector.start()
        else:
            raise DerivationError(f"unexpected token {token!r} outside a parameter")
    if collector.collecting:
        raise UnterminatedParameterError("text ends inside a parameter")
    return params


# -------------------------
# Random sequence
# -------------------------


class RandomSequence:
    """Seeded, reproducible stream of uniform reals in [0, 1)."""

    def __init__(self, seed: int | None = None) -> None:
        if seed is None:
            seed = random.SystemRandom().getrandbits(32)
        self.seed = seed
        self.count = 0
        self._rng = random.Random(seed)

    def next_real(self) -> float:
        self.count += 1
        return self._rng.random()


# -------------------------
# Rules
# -------------------------

_Replacement = Union[str, list[str], None]
ProductionResult = Union[
    _Replacement, tuple[_Replacement, Union[Sequence[Any], None]]
]
Production = Callable[..., ProductionResult]
Hook = Callable[["BuildContext"], None]


@dataclass(frozen=True)
class Rule:
    """A rule for one symbol.

    text    -> Replacement used when there is no production, or when it returns
               no replacement. May start with the sentinel.
    produce -> Called as produce(rule, context, *parameters). Returns None, a
               replacement (str or list of str), or a tuple which is always
               (replacement, next_parameters).
    config  -> Static, rule-local settings (e.g. {"as_param": True}).
    """

    text: str = ""
    produce: Production | None = None
    config: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "config", MappingProxyType(dict(self.config)))


class RuleRegistry(Mapping[str, Rule]):
    """Symbol -> Rule. Registering a symbol twice raises DuplicateRuleError."""

    def __init__(self, rules: Mapping[str, Rule] | None = None) -> None:
        self._rules: dict[str, Rule] = {}
        for key, rule in (rules or {}).items():
            self.register(key, rule)

    def register(self, key: str, rule: Rule) -> Rule:
        _require(
            isinstance(key, str) and len(key) == 1,
            "rule keys must be single-character strings",
        )
        _require(key not in _STRUCTURAL, f"'{key}' is a structural token")
        _require(isinstance(rule, Rule), f"rule for '{key}' must be a Rule")
        if key in self._rules:
            raise DuplicateRuleError(f"a rule for '{key}' is already registered")
        self._rules[key] = rule
        return rule

    def __getitem__(self, key: str) -> Rule:
        return self._rules[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)


# -------------------------
# Build context
# -------------------------

LOG_SILENT = 0
LOG_ACTION = 1
LOG_INFO = 2
LOG_VERBOSE = 3


def _resolve_sink(diag: Any) -> logging.Logger:
    if isinstance(diag, logging.Logger):
        return diag
    if isinstance(diag, str):
        return logging.getLogger(diag)
    return logger


@dataclass
class BuildContext:
    """Everything a production sees while one generation is derived."""

    global_data: Any
    state: Any
    random: RandomSequence
    key: Token = ""
    axiom: Axiom = field(default_factory=list)
    parameters: list[Any] = field(default_factory=list)
    collector: ParameterCollector = field(default_factory=ParameterCollector)

    @classmethod
    def new(
        cls, global_data: Any, state_template: Any, rng: RandomSequence
    ) -> BuildContext:
        return cls(
            global_data=global_data, state=copy.deepcopy(state_template), random=rng
        )

    def log_level(self) -> tuple[int, logging.Logger | None]:
        """Return (level, sink) for the current symbol.

        Resolution: diag_levels[key] -> diag_levels["default"] -> 1.
        Without global "diag" (or with diag False) nothing is logged.
        """
        diag = _lookup(self.global_data, "diag")
        if diag is None or diag is False:
            return LOG_SILENT, None
        sink = _resolve_sink(diag)
        levels = _lookup(self.global_data, "diag_levels")
        if not levels:
            return LOG_ACTION, sink
        level = levels.get(self.key, levels.get("default", LOG_ACTION))
        return int(level), sink


@dataclass(frozen=True)
class ScopeFrame:
    state: Any
    parameters: list[Any]


# -------------------------
# Built-in productions
# -------------------------


def diag(rule: Rule | None, ctx: BuildContext, *params: Any) -> None:
    """Log the symbol and its parameters. Used for symbols without a production."""
    level, sink = ctx.log_level()
    if level == LOG_SILENT or sink is None:
        return None

    m = [f"LSystem Rule '{ctx.key}'"]
    if params:
        m.append(", ...=" + ", ".join(f"'{p}'" for p in params))
    if level >= LOG_VERBOSE and ctx.state:
        m.append(f", state={ctx.state!r}")
    sink.info("%s.", "".join(m))
    return None


def random_parameter(
    rule: Rule | None, ctx: BuildContext, *params: Any
) -> ProductionResult:
    """Hand the received parameters plus a random number to the next symbol.

    With rule key 'k' and next numbers 0.4711, 0.815:
      'kx'           -> acts like '(0.4711)x'
      'kkx'          -> acts like '(0.4711)(0.815)x'
      '(cat)k(dog)x' -> acts like '(cat)(0.4711)(dog)x'
    """
    level, sink = ctx.log_level()
    if level > LOG_SILENT:
        diag(rule, ctx, *params)

    r = ctx.random.next_real()
    if level > LOG_ACTION and sink is not None:
        sink.info("\tr=%s.", r)
    return None, [*params, r]


def select(
    rule: Rule | None, ctx: BuildContext, charset: Any = None, *params: Any
) -> ProductionResult:
    """Pick a random character of the first parameter.

    Repeat a character to make it more likely. With rule config "as_param" the
    character is handed to the next symbol, otherwise it replaces the symbol:
      '(nsew)kx' -> 'wx', with 'w' being the randomly chosen character.
    """
    level, sink = ctx.log_level()
    if level > LOG_SILENT:
        diag(rule, ctx, *(() if charset is None else (charset,)), *params)

    if charset is None or str(charset) == "":
        if level > LOG_ACTION and sink is not None:
            sink.info("\tset=%r.", charset)
        return None

    charset = str(charset)
    if len(charset) == 1:
        return None, [charset]

    r = ctx.random.next_real()
    index = math.floor(r * len(charset))
    character = charset[index]
    if level > LOG_ACTION and sink is not None:
        sink.info("\tindex=%d, character='%s'.", index, character)

    if rule is not None and rule.config.get("as_param"):
        return None, [character]
    return character


def params_to_axiom(
    rule: Rule | None, ctx: BuildContext, *params: Any
) -> ProductionResult:
    """Emit the rule's text followed by the received parameters.

    '(nsew)skx' with s = select (as_param, text '.s') -> '(nsew)sk(w)x'
    """
    level, _ = ctx.log_level()
    if level > LOG_SILENT:
        diag(rule, ctx, *params)

    base = decode(rule.text) if rule is not None else []
    return render(encode(params, base))


BUILTIN_PRODUCTIONS: dict[str, Production] = {
    "diag": diag,
    "random": random_parameter,
    "select": select,
    "p2a": params_to_axiom,
}


# -------------------------
# Derivation engine
# -------------------------


def _unpack(result: ProductionResult) -> tuple[Any, Sequence[Any] | None]:
    if isinstance(result, tuple):
        if len(result) != 2:
            raise TypeError(
                "a production tuple must be (replacement, next_parameters); "
                f"got {len(result)} items"
            )
        replacement, next_params = result
        return replacement, next_params
    return result, None


def _collect_or_scope(ctx: BuildContext, stack: list[ScopeFrame]) -> bool:
    """Handle parameter collection and push/pop. Returns False for rule symbols."""
    key = ctx.key
    collector = ctx.collector

    if collector.collecting:
        param = collector.feed(key)
        if param is not None:
            ctx.parameters.append(param)
    elif key == GROUP_OPEN:
        collector.start()
    elif key == PUSH:
        stack.append(
            ScopeFrame(copy.deepcopy(ctx.state), copy.deepcopy(ctx.parameters))
        )
        ctx.axiom.append(key)
    elif key == POP:
        if not stack:
            raise UnbalancedScopeError("']' without a matching '['")
        frame = stack.pop()
        ctx.state = frame.state
        ctx.parameters = frame.parameters
        ctx.axiom.append(key)
    else:
        return False
    return True


class LSystem:
    """An L-system instance.

    axiom      -> Tokens rewritten by advance().
    global_data-> Passed by reference to every production; never copied.
    state      -> Template deep-copied into each derivation's context. The
                  template is not updated from the derivation's end state.
    generation -> Starts at 1, increased by every successful advance().
    rules      -> RuleRegistry.
    random     -> RandomSequence shared by all generations.
    """

    def __init__(
        self,
        axiom: str | Iterable[str],
        global_data: Any = None,
        state: Any = None,
        seed: int | None = None,
        rules: Mapping[str, Rule] | None = None,
    ) -> None:
        self.axiom: Axiom = decode(axiom)
        self.global_data = global_data if global_data is not None else {}
        self.state = copy.deepcopy(state) if state is not None else {}
        self.stack: list[ScopeFrame] = []
        self.generation = 1
        self.rules = rules if isinstance(rules, RuleRegistry) else RuleRegistry(rules)
        self.random = RandomSequence(seed)

    @property
    def text(self) -> str:
        return render(self.axiom)

    def __str__(self) -> str:
        return self.text

    def advance(self, hooks: Mapping[str, Hook] | None = None) -> BuildContext:
        """Derive the next generation and return the finished context."""
        if hooks is None:
            hooks = _lookup(self.global_data, "hooks")

        # Every derivation starts from the template, not the previous end state.
        ctx = BuildContext.new(self.global_data, self.state, self.random)
        stack = self.stack = []

        _, sink = ctx.log_level()
        if sink is not None:
            sink.info("LSystem axiom='%s'.", self.text)

        for token in self.axiom:
            ctx.key = token
            if not _collect_or_scope(ctx, stack):
                self._produce(ctx, hooks)

        if ctx.collector.collecting:
            raise UnterminatedParameterError("axiom ends inside a parameter")
        if stack:
            raise UnbalancedScopeError(f"{len(stack)} '[' left without a matching ']'")

        logger.debug(
            "generation %d: %d -> %d tokens",
            self.generation,
            len(self.axiom),
            len(ctx.axiom),
        )
        self.axiom = ctx.axiom
        self.generation += 1
        return ctx

    def _produce(self, ctx: BuildContext, hooks: Mapping[str, Hook] | None) -> None:
        key = ctx.key
        hook = hooks.get(key) if hooks else None
        if hook is not None:
            hook(ctx)

        rule = self.rules.get(key)
        produce = rule.produce if rule is not None and rule.produce else diag
        replacement, next_params = _unpack(produce(rule, ctx, *ctx.parameters))

        if replacement is None:
            replacement = rule.text if rule is not None else key
        tokens = decode(replacement)
        if len(tokens) > 1 and tokens[0] == SENTINEL:
            tokens = encode(ctx.parameters) + tokens[1:]

        ctx.axiom.extend(tokens)
        ctx.parameters = list(next_params) if next_params is not None else []


def derive(engine: LSystem, generations: int) -> Generator[str, None, None]:
    """Advance the engine and yield its axiom text after each generation."""
    _require(generations >= 0, "generations must be >= 0")
    for _ in range(generations):
        engine.advance()
        yield engine.text


# -------------------------
# Config parsing
# -------------------------


@dataclass(frozen=True)
class EngineConfig:
    name: str
    axiom: str
    generations: int
    seed: int | None
    global_data: dict[str, Any]
    state: dict[str, Any]
    rules: dict[str, Rule]


def _parse_rule(key: str, value: Any) -> Rule:
    if isinstance(value, str):
        return Rule(text=value)

    obj = _as_dict(value, f"rules['{key}']")
    text = _as_str(obj.get("text", ""), f"rules['{key}'].text")
    config = _as_dict(obj.get("config", {}), f"rules['{key}'].config")

    produce = None
    name = obj.get("production")
    if name is not None:
        name = _as_str(name, f"rules['{key}'].production")
        _require(
            name in BUILTIN_PRODUCTIONS,
            f"rules['{key}'].production must be one of "
            f"{', '.join(sorted(BUILTIN_PRODUCTIONS))}; got {name!r}",
        )
        produce = BUILTIN_PRODUCTIONS[name]

    return Rule(text=text, produce=produce, config=config)


def _parse_global(obj: dict[str, Any]) -> dict[str, Any]:
    global_data = dict(obj)

    diag_name = global_data.get("diag")
    if diag_name is not None:
        _as_str(diag_name, "global.diag")

    levels = global_data.get("diag_levels")
    if levels is not None:
        levels = _as_dict(levels, "global.diag_levels")
        for k, v in levels.items():
            level = _as_int(v, f"global.diag_levels['{k}']")
            _require(
                LOG_SILENT <= level <= LOG_VERBOSE,
                f"global.diag_levels['{k}'] must be between 0 and 3",
            )
    return global_data


def parse_config(obj: dict[str, Any]) -> EngineConfig:
    obj = _as_dict(obj, "root")

    name = _as_str(obj.get("name", "L-System"), "name")
    axiom = _as_str(obj.get("axiom", ""), "axiom")
    _require(len(axiom) > 0, "axiom must be non-empty")

    generations = _as_int(obj.get("generations", 0), "generations")
    _require(generations >= 0, "generations must be >= 0")

    seed = obj.get("seed")
    if seed is not None:
        seed = _as_int(seed, "seed")

    state = _as_dict(obj.get("state", {}), "state")
    global_data = _parse_global(_as_dict(obj.get("global", {}), "global"))

    rules_obj = _as_dict(obj.get("rules", {}), "rules")
    rules: dict[str, Rule] = {}
    for k, v in rules_obj.items():
        _require(
            isinstance(k, str) and len(k) == 1,
            "rules keys must be single-character strings",
        )
        _require(k not in _STRUCTURAL, f"rules['{k}']: '{k}' is a structural token")
        rules[k] = _parse_rule(k, v)

    return EngineConfig(
        name=name,
        axiom=axiom,
        generations=generations,
        seed=seed,
        global_data=global_data,
        state=state,
        rules=rules,
    )


def build_engine(cfg: EngineConfig) -> LSystem:
    return LSystem(
        cfg.axiom,
        global_data=cfg.global_data,
        state=cfg.state,
        seed=cfg.seed,
        rules=cfg.rules,
    )


def _ensure_parent_dir(path: str) -> None:
    os.makedirs(os.path.dirname(os.path.abspath(path)) or ".", exist_ok=True)


def load_json(path: str) -> dict[str, Any]:
    with open(path, encoding="utf-8") as f:
        try:
            return cast(dict[str, Any], json.load(f))
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in {path}: {e}") from e


def dump_json(obj: dict[str, Any], path: str) -> None:
    _ensure_parent_dir(path)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(obj, f, indent=2, ensure_ascii=False)
        f.write("\n")


# -------------------------
# Random config generator
# -------------------------


_PARAMETER_ALPHABET = "abcxyz0123)"


def _random_parameter_group(rng: random.Random) -> str:
    text = "".join(rng.choice(_PARAMETER_ALPHABET) for _ in range(rng.randint(1, 4)))
    return render(encode([text]))


def _random_word(
    rng: random.Random,
    symbols: str,
    length: int,
    *,
    p_branch: float = 0.20,
    p_param: float = 0.15,
) -> str:
    """Generate a random replacement word over `symbols`.

    Scopes are balanced and every parameter group is followed by a symbol
    that receives it. Parameter text may contain an escaped ")".
    """
    word: list[str] = []
    depth = 0

    for _ in range(length):
        r = rng.random()
        if r < p_branch and depth < 3:
            word.append(PUSH)
            depth += 1
            continue
        if r < p_branch * 2 and depth > 0:
            word.append(POP)
            depth -= 1
            continue

        if r < p_branch * 2 + p_param:
            word.append(_random_parameter_group(rng))
        word.append(rng.choice(symbols))

    word.append(POP * depth)
    return "".join(word)


def generate_random_config(seed: int | None = None) -> dict[str, Any]:
    rng = random.Random(seed)

    generations = rng.randint(2, 4)
    symbols = "".join(rng.sample("ABCDFGXYZ", rng.randint(2, 4)))

    builtin_rules: dict[str, Any] = {}
    if rng.random() < 0.5:
        builtin_rules["R"] = {"text": "R", "production": "random"}
    if rng.random() < 0.5:
        builtin_rules["S"] = {
            "text": ".S",
            "production": "select",
            "config": {"as_param": True},
        }
    alphabet = symbols + "".join(builtin_rules)

    rules: dict[str, Any] = {
        sym: _random_word(rng, alphabet, rng.randint(2, 6)) for sym in symbols
    }
    rules.update(builtin_rules)

    cfg = {
        "name": "Random L-System",
        "axiom": rng.choice(symbols),
        "generations": generations,
        "seed": rng.randrange(2**31),
        "state": {},
        "global": {},
        "rules": rules,
    }

    # Internal sanity check: generated config must always parse cleanly.
    parse_config(cfg)
    return cfg


# -------------------------
# CLI / Help
# -------------------------

HELP_EPILOG = r"""
INPUT JSON SYNTAX

  name: string (optional)
  axiom: string (required)
      The initial word. "(...)" groups are parameters for the next symbol,
      "\)" is a literal ")" inside a parameter, "[" / "]" save and restore
      the build state.
  generations: integer >= 0 (default 0)
  seed: integer (optional)
      Seed of the random sequence shared by every generation.
  state: object (optional)
      Template copied into every generation's build state.
  global: object (optional)
      Passed to every production unchanged.
      global.diag: logger name; enables rule diagnostics.
      global.diag_levels: symbol -> 0..3, plus "default".
  rules: object mapping single-character symbol -> rule
      "AB"                                  replacement text
      {"text": ".S", "production": "select", "config": {"as_param": true}}

  Productions: diag, random, select, p2a.
  A replacement starting with "." (and longer than one character) repeats
  the received parameters in front of the rest.

Example (algae):

    {"axiom": "A", "generations": 3, "rules": {"A": "AB", "B": "A"}}
"""


def build_argparser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="lsystem_engine.py",
        description="Parametric L-system rewriting engine.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=HELP_EPILOG,
    )
    p.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Logging level (diagnostics are logged at INFO).",
    )

    sub = p.add_subparsers(dest="cmd", required=True)

    pd = sub.add_parser(
        "derive",
        help="Derive generations from a JSON config and print the axiom.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    pd.add_argument("config", help="Path to the input JSON config.")
    pd.add_argument(
        "--generations",
        type=int,
        default=None,
        help="Override the number of generations from the config.",
    )
    pd.add_argument(
        "--all", action="store_true", help="Print every generation, not just the last."
    )
    pd.add_argument("--output", default=None, help="Also write the result as JSON.")

    pv = sub.add_parser(
        "validate",
        help="Validate a JSON config and print a brief summary.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    pv.add_argument("config", help="Path to the input JSON config.")

    pg = sub.add_parser(
        "random",
        help="Generate a random JSON config for experimentation.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    pg.add_argument("output", help="Where to write the generated JSON file.")
    pg.add_argument(
        "--seed", type=int, default=None, help="Seed for repeatable randomness."
    )

    return p


# -------------------------
# Commands
# -------------------------


def cmd_derive(
    config_path: str, generations: int | None, show_all: bool, output_path: str | None
) -> None:
    cfg = parse_config(load_json(config_path))
    if generations is None:
        generations = cfg.generations
    engine = build_engine(cfg)

    texts = [engine.text]
    for text in derive(engine, generations):
        texts.append(text)
        if show_all:
            print(f"{engine.generation}: {text}")
    if not show_all:
        print(engine.text)

    if output_path:
        dump_json(
            {
                "name": cfg.name,
                "seed": engine.random.seed,
                "generation": engine.generation,
                "axioms": texts,
            },
            output_path,
        )


_VALIDATE_TOKEN_LIMIT = 100_000


def cmd_validate(config_path: str) -> None:
    cfg = parse_config(load_json(config_path))

    print(f"name: {cfg.name}")
    print(f"axiom length: {len(cfg.axiom)}")
    print(f"generations: {cfg.generations}")
    print(f"rules: {len(cfg.rules)}")
    print(f"seed: {cfg.seed}")

    # Dry run to catch derivation-time failures (unbalanced scopes, open
    # parameters), stopping once the axiom grows past the limit.
    engine = build_engine(cfg)
    truncated = False
    for _ in derive(engine, cfg.generations):
        if len(engine.axiom) > _VALIDATE_TOKEN_LIMIT:
            truncated = True
            break
    print(f"derived generations: {engine.generation - 1}")
    print(f"tokens: {len(engine.axiom)}")
    if truncated:
        print(
            f"warning: axiom exceeds {_VALIDATE_TOKEN_LIMIT} tokens; "
            "remaining generations were not derived"
        )


def cmd_random(output_path: str, seed: int | None) -> None:
    cfg = generate_random_config(seed)
    dump_json(cfg, output_path)


def main(argv: list[str] | None = None) -> int:
    ap = build_argparser()
    args = ap.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level))

    try:
        if args.cmd == "derive":
            cmd_derive(args.config, args.generations, args.all, args.output)
        elif args.cmd == "validate":
            cmd_validate(args.config)
        elif args.cmd == "random":
            cmd_random(args.output, args.seed)
        else:
            raise AssertionError("unreachable")
    except ConfigError as e:
        print(f"Config error: {e}", file=sys.stderr)
        return 2
    except DerivationError as e:
        print(f"Derivation error: {e}", file=sys.stderr)
        return 2
    except OSError as e:
        print(f"File error: {e}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
