from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Protocol

from applyflow.types import FormButton, FormField

logger = logging.getLogger(__name__)

FIELD_MARKER = "data-af-field"
BUTTON_MARKER = "data-af-button"

_VISIBLE_JS = """
const visible = (el) => {
  const style = window.getComputedStyle(el);
  const rect = el.getBoundingClientRect();
  return style.visibility !== 'hidden' && style.display !== 'none' && rect.width > 0 && rect.height > 0;
};
const labelFor = (el) => {
  if (el.id) {
    const byFor = document.querySelector(`label[for="${CSS.escape(el.id)}"]`);
    if (byFor && byFor.innerText.trim()) return byFor.innerText;
  }
  const wrapping = el.closest('label');
  if (wrapping && wrapping.innerText.trim()) return wrapping.innerText;
  return el.getAttribute('aria-label') || el.getAttribute('placeholder') || el.getAttribute('name') || el.id || '';
};
"""

COLLECT_FIELDS_JS = (
    "(marker) => {"
    + _VISIBLE_JS
    + """
  const skipped = new Set(['hidden', 'submit', 'button', 'reset', 'image', 'file', 'checkbox', 'radio']);
  document.querySelectorAll(`[${marker}]`).forEach((el) => el.removeAttribute(marker));
  const fields = [];
  let index = 0;
  document.querySelectorAll('input, textarea, select').forEach((el) => {
    const tag = el.tagName.toLowerCase();
    const type = (el.getAttribute('type') || (tag === 'input' ? 'text' : tag)).toLowerCase();
    if (tag === 'input' && skipped.has(type)) return;
    if (el.disabled || el.readOnly || !visible(el)) return;
    const key = `f${index++}`;
    el.setAttribute(marker, key);
    fields.push({
      key,
      tag,
      input_type: type,
      label: labelFor(el).trim(),
      name: el.getAttribute('name') || '',
      element_id: el.id || '',
      value: el.value || '',
      required: el.required || el.getAttribute('aria-required') === 'true',
      options: tag === 'select'
        ? Array.from(el.options).map((o) => ({ value: o.value, text: o.text.trim() }))
        : [],
    });
  });
  return fields;
}"""
)

COLLECT_FILE_INPUTS_JS = (
    "(marker) => {"
    + _VISIBLE_JS
    + """
  const inputs = [];
  let index = 0;
  document.querySelectorAll('input[type=file]').forEach((el) => {
    if (el.disabled) return;
    const key = `u${index++}`;
    el.setAttribute(marker, key);
    inputs.push({
      key,
      tag: 'input',
      input_type: 'file',
      label: labelFor(el).trim(),
      name: el.getAttribute('name') || '',
      element_id: el.id || '',
      value: '',
      required: el.required,
      options: [],
    });
  });
  return inputs;
}"""
)

COLLECT_BUTTONS_JS = (
    "(marker) => {"
    + _VISIBLE_JS
    + """
  document.querySelectorAll(`[${marker}]`).forEach((el) => el.removeAttribute(marker));
  const buttons = [];
  let index = 0;
  const selector = 'button, input[type=submit], input[type=button], [role=button], a[href]';
  document.querySelectorAll(selector).forEach((el) => {
    if (el.disabled || el.getAttribute('aria-disabled') === 'true' || !visible(el)) return;
    const text = (el.innerText || el.value || el.getAttribute('aria-label') || '').trim();
    if (!text) return;
    const key = `b${index++}`;
    el.setAttribute(marker, key);
    buttons.push({ key, text });
  });
  return buttons;
}"""
)

SET_VALUE_JS = """([marker, key, value]) => {
  const el = document.querySelector(`[${marker}="${key}"]`);
  if (!el) return false;
  const proto = el.tagName === 'TEXTAREA'
    ? HTMLTextAreaElement.prototype
    : el.tagName === 'SELECT' ? HTMLSelectElement.prototype : HTMLInputElement.prototype;
  Object.getOwnPropertyDescriptor(proto, 'value').set.call(el, value);
  el.dispatchEvent(new Event('input', { bubbles: true }));
  el.dispatchEvent(new Event('change', { bubbles: true }));
  return true;
}"""


class FormDriver(Protocol):
    """Page-level DOM access used by apply adapters."""

    async def collect_fields(self) -> list[FormField]: ...

    async def set_value(self, key: str, value: str) -> bool: ...

    async def list_file_inputs(self) -> list[FormField]: ...

    async def set_file(self, key: str, path: Path) -> None: ...

    async def list_buttons(self) -> list[FormButton]: ...

    async def click(self, key: str) -> None: ...

    async def body_text(self) -> str: ...

    async def frame_urls(self) -> list[str]: ...

    async def current_url(self) -> str: ...

    async def wait(self, ms: int) -> None: ...


class PlaywrightFormDriver:
    def __init__(self, page: Any):
        self.page = page

    async def collect_fields(self) -> list[FormField]:
        raw = await self.page.evaluate(COLLECT_FIELDS_JS, FIELD_MARKER)
        return [FormField.model_validate(item) for item in raw]

    async def set_value(self, key: str, value: str) -> bool:
        return bool(await self.page.evaluate(SET_VALUE_JS, [FIELD_MARKER, key, value]))

    async def list_file_inputs(self) -> list[FormField]:
        raw = await self.page.evaluate(COLLECT_FILE_INPUTS_JS, FIELD_MARKER)
        return [FormField.model_validate(item) for item in raw]

    async def set_file(self, key: str, path: Path) -> None:
        await self.page.set_input_files(f'[{FIELD_MARKER}="{key}"]', str(path))

    async def list_buttons(self) -> list[FormButton]:
        raw = await self.page.evaluate(COLLECT_BUTTONS_JS, BUTTON_MARKER)
        return [FormButton.model_validate(item) for item in raw]

    async def click(self, key: str) -> None:
        await self.page.click(f'[{BUTTON_MARKER}="{key}"]')
        try:
            await self.page.wait_for_load_state("domcontentloaded")
        except Exception as exc:
            logger.debug("No load state after click: %s", exc)

    async def body_text(self) -> str:
        try:
            return await self.page.inner_text("body")
        except Exception as exc:
            logger.debug("Could not read body text: %s", exc)
            return ""

    async def frame_urls(self) -> list[str]:
        return [frame.url for frame in self.page.frames]

    async def current_url(self) -> str:
        return str(self.page.url)

    async def wait(self, ms: int) -> None:
        if ms > 0:
            await self.page.wait_for_timeout(ms)
