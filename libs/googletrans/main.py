import asyncio
import inspect
import logging

from googletrans import Translator

logger = logging.getLogger("googletrans_main")


def _settle(value):
    # googletrans 4.x returns a coroutine from translate(); 3.x returns the result
    if inspect.isawaitable(value):
        async def _await():
            return await value
        return asyncio.run(_await())
    return value


def _alternatives(result):
    """Yield (part_of_speech, word) pairs from the response's extra data, if any."""
    extra = getattr(result, "extra_data", None) or {}
    for group in extra.get("all-translations") or ():
        if not isinstance(group, (list, tuple)) or len(group) < 2:
            continue
        pos = group[0] if isinstance(group[0], str) else ""
        for word in group[1] or ():
            if isinstance(word, str):
                yield pos, word


def translate_candidates(text, target_language='en', limit=10):
    """Return up to ``limit`` dicts ``{label, part_of_speech, definition}``.

    The main translation comes first, followed by the alternative
    translations the service reports for single words.
    """
    translator = Translator()
    result = _settle(translator.translate(text, dest=target_language))

    candidates = []
    seen = set()

    def _add(label, pos=""):
        key = label.strip().lower()
        if not key or key in seen:
            return
        seen.add(key)
        candidates.append({
            "label": label.strip(),
            "part_of_speech": pos,
            "definition": f"{text} ({result.src}) -> {label.strip()} ({result.dest})",
        })

    if result.text:
        _add(result.text)
    for pos, word in _alternatives(result):
        if len(candidates) >= limit:
            break
        _add(word, pos)
    return candidates[:limit]


# --- Example Usage ---
if __name__ == "__main__":
    logging.basicConfig(level=logging.DEBUG)
    for cand in translate_candidates("สวัสดี", target_language='en'):
        print(cand)
