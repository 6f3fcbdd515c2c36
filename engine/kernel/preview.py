"""
myPip Kernel — Preview Renderer

Pure binding pass: (markup, on_action) → BoundPreview.
No AI. No IO.

bind_preview() parses a generated HTML fragment, places it inside a
sandboxed scrollable viewport, and finds every element carrying
data-action-id. Each tagged element gets a binding key scoped to the render
generation, baseline affordances (pointer cursor, hover/active feedback,
keyboard focus), and a slot in the dispatch table. Untagged native form
controls only get focus-visible styling.

A BoundPreview is replaced wholesale on every render, so bindings never
accumulate: a key from an older generation resolves to nothing.

render_document() wraps a BoundPreview into the full page served to the
browser, including the client script that reports gestures back.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any
from uuid import uuid4

import chevron
from bs4 import BeautifulSoup, Tag

from engine.kernel.types import ACTION_DESCRIPTION_ATTR, ACTION_ID_ATTR, BINDING_KEY_ATTR, ActionTag

logger = logging.getLogger(__name__)

ActionHandler = Callable[[str, str], Any]

GESTURE_EVENTS = frozenset({"click", "touchstart", "mousedown", "keydown"})

NATIVE_CONTROLS = ["input", "select", "textarea", "button"]
NATIVELY_FOCUSABLE = frozenset({"a", "button", "input", "select", "textarea"})

VIEWPORT_CLASS = "mypip-viewport"
ACTION_CLASSES = ("mypip-action", "hover:opacity-80", "active:opacity-60", "transition-opacity")
FOCUS_CLASS = "mypip-focusable"
ACTION_STYLE = "cursor: pointer; user-select: none;"

PRESS_SCALE = 0.95
PRESS_MS = 100

_EVENT_ATTR = re.compile(r"^on[a-z]+$", re.IGNORECASE)
# Attributes a browser may load or navigate to
_URL_ATTRS = ("href", "src", "action", "formaction", "xlink:href")
# Browsers ignore whitespace and control characters inside the scheme
_SCRIPT_URL = re.compile(r"^(?:javascript:|vbscript:|data:text/html)", re.IGNORECASE)
_URL_NOISE = re.compile(r"[\x00-\x20]+")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


@dataclass
class BoundPreview:
    """One render pass: serialized markup plus its dispatch table."""

    html: str
    tags: list[ActionTag]
    generation: int
    handler: ActionHandler
    _by_key: dict[str, ActionTag] = field(default_factory=dict, repr=False)
    _gestures: set[str] = field(default_factory=set, repr=False)

    def resolve(self, binding_key: str) -> ActionTag | None:
        """Return the tag bound to this key in this render, or None."""
        return self._by_key.get(binding_key)

    def activate(self, binding_key: str, event: str = "click", gesture_id: str | None = None) -> Any:
        """
        Unified handler for click, touchstart, mousedown and keyboard activation.

        One gesture usually fires several events (touchstart, mousedown,
        click); only the first one with a given gesture_id reaches the
        handler. Without a gesture_id every call is its own gesture.

        Returns:
            Whatever on_action returned, or None for unknown/stale keys and
            repeated events of the same gesture.
        """
        if event not in GESTURE_EVENTS:
            raise ValueError(f"Unsupported event: {event!r}. Valid events: {sorted(GESTURE_EVENTS)}")

        tag = self._by_key.get(binding_key)
        if tag is None:
            logger.debug("No binding for key %r in generation %d", binding_key, self.generation)
            return None

        gesture = gesture_id or uuid4().hex
        if gesture in self._gestures:
            return None
        self._gestures.add(gesture)

        return self.handler(tag.action_id, tag.action_description)


def bind_preview(markup: str, on_action: ActionHandler, generation: int = 0) -> BoundPreview:
    """
    Bind a preview fragment to an action handler.
    Pure function. No side effects. No IO.

    Args:
        markup: HTML fragment produced by generation
        on_action: Called as on_action(action_id, action_description) once per gesture
        generation: Render counter; prefixes every binding key

    Returns:
        BoundPreview with serialized HTML and the tags in document order
    """
    soup = BeautifulSoup(markup, "html.parser")
    _sandbox(soup)

    viewport = soup.new_tag("div", attrs={"class": VIEWPORT_CLASS})
    for child in list(soup.contents):
        viewport.append(child.extract())
    soup.append(viewport)

    tags: list[ActionTag] = []
    by_key: dict[str, ActionTag] = {}

    for el in viewport.find_all(attrs={ACTION_ID_ATTR: True}):
        action_id = (el.get(ACTION_ID_ATTR) or "").strip()
        if not action_id:
            continue
        description = (el.get(ACTION_DESCRIPTION_ATTR) or "").strip() or action_id
        key = f"{generation}:{len(tags)}"

        el[BINDING_KEY_ATTR] = key
        _apply_action_affordances(el)

        tag = ActionTag(action_id=action_id, action_description=description, binding_key=key)
        tags.append(tag)
        by_key[key] = tag

    for el in viewport.find_all(NATIVE_CONTROLS):
        if not el.has_attr(BINDING_KEY_ATTR):
            _add_classes(el, (FOCUS_CLASS,))

    logger.debug("Bound %d interactive elements (generation %d)", len(tags), generation)

    return BoundPreview(
        html=str(soup),
        tags=tags,
        generation=generation,
        handler=on_action,
        _by_key=by_key,
    )


def extract_action_tags(markup: str) -> list[ActionTag]:
    """List the action tags in a fragment without binding anything."""
    return bind_preview(markup, _ignore).tags


class PreviewRenderer:
    """
    Owns the current BoundPreview.

    Every render() bumps the generation and replaces the previous binding
    set, which is how stale bindings are dropped.
    """

    def __init__(self) -> None:
        self.generation = 0
        self.current: BoundPreview | None = None

    def render(self, markup: str, on_action: ActionHandler) -> BoundPreview:
        self.generation += 1
        self.current = bind_preview(markup, on_action, generation=self.generation)
        return self.current

    def activate(self, binding_key: str, event: str = "click", gesture_id: str | None = None) -> Any:
        if self.current is None:
            return None
        return self.current.activate(binding_key, event=event, gesture_id=gesture_id)

    def resolve(self, binding_key: str) -> ActionTag | None:
        if self.current is None:
            return None
        return self.current.resolve(binding_key)


def render_document(bound: BoundPreview, interact_url: str, title: str = "myPip Preview") -> str:
    """
    Full HTML page for a bound preview.

    The client script applies the pressed affordance, stops default handling
    and bubbling, and posts {binding_key, gesture_id} once per gesture.
    """
    return chevron.render(
        _DOCUMENT_TEMPLATE,
        {
            "title": title,
            "body": bound.html,
            "interact_url": interact_url,
            "generation": bound.generation,
            "press_scale": PRESS_SCALE,
            "press_ms": PRESS_MS,
        },
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _ignore(action_id: str, action_description: str) -> None:
    return None


def _sandbox(soup: BeautifulSoup) -> None:
    """Drop anything in generated markup that could run script."""
    for script in soup.find_all("script"):
        script.decompose()
    for el in soup.find_all(True):
        for attr in [a for a in el.attrs if _EVENT_ATTR.match(a)]:
            del el[attr]
        if el.has_attr("srcdoc"):
            del el["srcdoc"]
        for attr in _URL_ATTRS:
            value = el.get(attr)
            if isinstance(value, str) and _SCRIPT_URL.match(_URL_NOISE.sub("", value)):
                del el[attr]


def _add_classes(el: Tag, classes: tuple[str, ...]) -> None:
    current = el.get("class") or []
    if isinstance(current, str):
        current = current.split()
    el["class"] = current + [c for c in classes if c not in current]


def _apply_action_affordances(el: Tag) -> None:
    _add_classes(el, ACTION_CLASSES)

    style = (el.get("style") or "").strip()
    if "cursor" not in style:
        if style and not style.endswith(";"):
            style += ";"
        style = f"{style} {ACTION_STYLE}".strip()
    el["style"] = style

    if el.name not in NATIVELY_FOCUSABLE:
        if not el.has_attr("tabindex"):
            el["tabindex"] = "0"
        if not el.has_attr("role"):
            el["role"] = "button"


_DOCUMENT_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>{{title}}</title>
<script src="https://cdn.tailwindcss.com"></script>
<style>
  html, body { margin: 0; height: 100%; background: #fff; color: #262626; }
  .mypip-viewport { position: relative; width: 100%; height: 100%; overflow-y: auto;
    -webkit-overflow-scrolling: touch; touch-action: manipulation; }
  .mypip-action { transition: transform 0.1s ease, opacity 0.15s ease; }
  .mypip-action:focus-visible, .mypip-focusable:focus-visible {
    outline: 2px solid #f59e0b; outline-offset: 2px; }
</style>
</head>
<body data-interact-url="{{interact_url}}" data-generation="{{generation}}">
{{{body}}}
<script>
(function () {
  var url = document.body.dataset.interactUrl;
  var pending = false;

  function press(el) {
    el.style.transform = "scale({{press_scale}})";
    setTimeout(function () { el.style.transform = "scale(1)"; }, {{press_ms}});
  }

  function bind(el) {
    var gesture = null;

    function handle(e) {
      if (e.type === "keydown" && e.key !== "Enter" && e.key !== " ") return;
      e.preventDefault();
      e.stopPropagation();
      if (gesture !== null || pending) return;
      gesture = Math.random().toString(36).slice(2) + Date.now().toString(36);
      setTimeout(function () { gesture = null; }, 400);
      press(el);
      pending = true;
      fetch(url, {
        method: "POST",
        credentials: "same-origin",
        headers: { "Content-Type": "application/json" },
        body: JSON.stringify({ binding_key: el.dataset.bindingKey, gesture_id: gesture })
      }).then(function (res) { return res.json(); }).then(function (data) {
        window.parent.postMessage({ type: "mypip:interaction", outcome: data }, "*");
        window.location.reload();
      }).catch(function () { pending = false; });
    }

    ["click", "touchstart", "mousedown", "keydown"].forEach(function (name) {
      el.addEventListener(name, handle, { passive: false });
    });
  }

  document.querySelectorAll("[data-binding-key]").forEach(bind);
})();
</script>
</body>
</html>
"""
