"""Page-side protocol extension

Names of the host functions exposed to page script, and the startup script
injected before any page script on every navigation.

Handshake:
1. ProtocolSession exposes ENABLE_COPY_PASTE (returns True) plus the two
   clipboard functions.
2. The startup script calls ENABLE_COPY_PASTE and only registers the
   copy/cut/paste listeners when it resolves to true. A page where the
   bindings are missing gets no clipboard sync and no errors.
"""

from enum import Enum


class ExposedFunc(str, Enum):
    EMIT_COPY = "EMIT_BROWSE_PANEL_ON_COPY"
    GET_PASTE = "EMIT_BROWSE_PANEL_GET_PASTE"
    ENABLE_COPY_PASTE = "ENABLE_BROWSE_PANEL_HOOK_COPY_PASTE"


STARTUP_SCRIPT = """
(() => {
  // embedded devtools defaults
  try {
    localStorage.setItem('screencastEnabled', 'false');
    localStorage.setItem('panel-selectedTab', 'console');
  } catch (e) {}

  const probe = window['%(enable)s'];
  if (typeof probe !== 'function')
    return;

  Promise.resolve(probe()).then((enabled) => {
    if (enabled !== true)
      return;

    const copyHandler = (event) => {
      const text = (event.clipboardData && event.clipboardData.getData('text/plain'))
        || (document.getSelection() && document.getSelection().toString());
      const emit = window['%(emit_copy)s'];
      if (text && typeof emit === 'function')
        emit(text);
    };
    document.addEventListener('copy', copyHandler);
    document.addEventListener('cut', copyHandler);
    document.addEventListener('paste', async (event) => {
      const getPaste = window['%(get_paste)s'];
      if (typeof getPaste !== 'function')
        return;
      event.preventDefault();
      const text = await getPaste();
      if (text)
        document.execCommand('insertText', false, text);
    });
  }).catch(() => {});
})();
""" % {
    "enable": ExposedFunc.ENABLE_COPY_PASTE.value,
    "emit_copy": ExposedFunc.EMIT_COPY.value,
    "get_paste": ExposedFunc.GET_PASTE.value,
}


# Playwright has no removeExposedFunction; drop the window binding instead.
REMOVE_BINDING_SCRIPT = "(name) => { delete window[name]; }"
