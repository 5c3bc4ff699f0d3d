"""
uiforge Preview — Sandbox Harness Builder

Builds a self-contained HTML document that compiles and mounts a generated
React component in the browser, and explains itself when it can't.

The runtime libraries are loaded from a CDN and the component is compiled
client-side with Babel standalone:
- No build step on the server
- Source is embedded verbatim in an inert text/plain block
- A watchdog walks WAIT_COMPILER → WAIT_ENTRY → MOUNTING → RENDERED, with any
  state able to fall into FAILED and render a diagnostic panel
- Every transition is posted to the parent frame and mirrored on
  window.__uiforgeHarness
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterable
from typing import Any

from engine.preview.normalizer import WARNING_MISSING_RETURN, WARNING_NOT_CALLABLE

DEFAULT_TITLE = "Generated App - Live Preview"

DEVICE_WIDTHS = {
    "desktop": "100%",
    "tablet": "768px",
    "mobile": "375px",
}

REQUIRED_LIBRARIES = [
    "https://cdnjs.cloudflare.com/ajax/libs/react/18.2.0/umd/react.production.min.js",
    "https://cdnjs.cloudflare.com/ajax/libs/react-dom/18.2.0/umd/react-dom.production.min.js",
    "https://cdnjs.cloudflare.com/ajax/libs/babel-standalone/7.23.6/babel.min.js",
]
OPTIONAL_LIBRARIES = [
    "https://cdnjs.cloudflare.com/ajax/libs/lucide-react/0.263.1/umd/lucide-react.js",
]
TAILWIND_URL = "https://cdn.tailwindcss.com"

COMPILER_TIMEOUT_MS = 3000
ENTRY_TIMEOUT_MS = 15000
POST_MOUNT_CHECK_MS = 500

# Watchdog states. Any state may fall into FAILED, which is terminal.
WATCHDOG_INITIAL = "WAIT_COMPILER"
WATCHDOG_TRANSITIONS: dict[str, list[str]] = {
    "WAIT_COMPILER": ["WAIT_ENTRY", "FAILED"],
    "WAIT_ENTRY": ["MOUNTING", "FAILED"],
    "MOUNTING": ["RENDERED", "FAILED"],
    "RENDERED": ["FAILED"],
    "FAILED": [],
}

# Hooks handed to the component as explicit bindings.
HOOK_BINDINGS = [
    "useState",
    "useEffect",
    "useCallback",
    "useMemo",
    "useRef",
    "useContext",
    "useReducer",
    "useLayoutEffect",
]

# Icon name → glyph used when lucide-react is unavailable.
ICON_GLYPHS = {
    "Play": "▶",
    "Pause": "⏸",
    "RotateCcw": "🔄",
    "Trophy": "🏆",
    "Target": "🎯",
    "Zap": "⚡",
    "Sparkles": "✨",
    "Mail": "✉",
    "Lock": "🔒",
    "User": "👤",
    "AlertCircle": "⚠",
    "Check": "✓",
    "Calendar": "📅",
    "Clock": "🕐",
    "ArrowRight": "→",
    "Star": "⭐",
    "Rocket": "🚀",
    "Shield": "🛡",
    "Search": "🔍",
    "Cloud": "☁",
    "Sun": "☀",
    "CloudRain": "🌧",
    "Wind": "💨",
    "Thermometer": "🌡",
    "Droplets": "💧",
    "MapPin": "📍",
    "RefreshCw": "🔄",
    "Heart": "❤",
    "Bell": "🔔",
    "Settings": "⚙",
    "Menu": "☰",
    "X": "✕",
    "Plus": "+",
    "Minus": "−",
    "Edit": "✎",
    "Trash": "🗑",
    "Save": "💾",
    "Download": "⬇",
    "Upload": "⬆",
    "Copy": "📋",
    "Eye": "👁",
    "EyeOff": "🙈",
}

FAILURE_TITLES = {
    "HarnessCompileTimeout": "Preview runtime did not load",
    "HarnessCompileFailed": "Component failed to compile",
    "HarnessEntryMissing": "Component not defined",
    "HarnessMountThrew": "Component threw while rendering",
    "HarnessMountEmpty": "Component returned nothing",
}

LIKELY_CAUSES = [
    "Syntax errors in generated code",
    "Missing React imports",
    "Invalid JSX syntax",
    "Babel compilation failed",
    "Component code is incomplete",
    "Network issues loading Babel/React libraries",
]

WARNING_TEXT = {
    WARNING_MISSING_RETURN: "App is defined but does not return anything to render.",
    WARNING_NOT_CALLABLE: "App is defined but is not a function or class component.",
}

_STYLE_CLOSE = re.compile(r"</(?=style)", re.IGNORECASE)


def build_harness(
    escaped_source: str,
    device: str = "desktop",
    warnings: Iterable[str] = (),
    title: str | None = None,
    css: str | None = None,
    compiler_timeout_ms: int = COMPILER_TIMEOUT_MS,
    entry_timeout_ms: int = ENTRY_TIMEOUT_MS,
    post_mount_check_ms: int = POST_MOUNT_CHECK_MS,
) -> str:
    """
    Render the complete harness document.

    Args:
        escaped_source: Normalized component source, already passed through escape_embedded
        device: desktop, tablet or mobile frame width
        warnings: Normalizer warnings shown in the diagnostic panel on failure
        title: Optional page title override
        css: Optional stylesheet shipped with the project (src/index.css)

    Returns:
        Complete HTML string
    """
    if device not in DEVICE_WIDTHS:
        raise ValueError(f"Unknown device: {device!r}")

    warnings = list(warnings)
    config = harness_config(
        warnings,
        compiler_timeout_ms=compiler_timeout_ms,
        entry_timeout_ms=entry_timeout_ms,
        post_mount_check_ms=post_mount_check_ms,
    )
    preload_links = "\n".join(f'<link rel="preload" as="script" href="{url}" crossorigin>' for url in REQUIRED_LIBRARIES)
    app_css = _STYLE_CLOSE.sub("<\\\\/", css) if css else ""

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>{_escape_html(title or DEFAULT_TITLE)}</title>
{preload_links}
<script src="{TAILWIND_URL}"></script>
<style>
{HARNESS_CSS}
.preview-frame {{ max-width: {DEVICE_WIDTHS[device]}; }}
</style>
<style id="app-css">
{app_css}
</style>
</head>
<body data-device="{device}">
<div id="loading" class="loading">
  <div class="loading-spinner"></div>
  <div class="loading-title">Loading Preview...</div>
  <div class="loading-detail">Compiling React component</div>
</div>
<div class="preview-frame">
  <div id="root" class="preview-container" hidden></div>
</div>
<div id="diagnostics" class="diagnostics" hidden></div>
<div id="success-message" class="success-message">Preview loaded successfully!</div>
<script type="text/plain" id="component-source">{escaped_source}</script>
<script type="application/json" id="harness-config">{_json_for_script(config)}</script>
<script>
{HARNESS_RUNTIME}
</script>
</body>
</html>"""


def harness_config(
    warnings: list[str],
    compiler_timeout_ms: int = COMPILER_TIMEOUT_MS,
    entry_timeout_ms: int = ENTRY_TIMEOUT_MS,
    post_mount_check_ms: int = POST_MOUNT_CHECK_MS,
) -> dict[str, Any]:
    """The JSON configuration read by the harness runtime."""
    return {
        "runtime": {"required": REQUIRED_LIBRARIES, "optional": OPTIONAL_LIBRARIES},
        "timeouts": {
            "compilerMs": compiler_timeout_ms,
            "entryMs": entry_timeout_ms,
            "postMountMs": post_mount_check_ms,
        },
        "watchdog": {"initial": WATCHDOG_INITIAL, "transitions": WATCHDOG_TRANSITIONS},
        "hooks": HOOK_BINDINGS,
        "icons": ICON_GLYPHS,
        "warnings": [{"code": w, "text": WARNING_TEXT.get(w, w)} for w in warnings],
        "failureTitles": FAILURE_TITLES,
        "likelyCauses": LIKELY_CAUSES,
    }


def _json_for_script(data: Any) -> str:
    """JSON that cannot close or comment out its script block."""
    return (
        json.dumps(data, ensure_ascii=False)
        .replace("<", "\\u003c")
        .replace(">", "\\u003e")
        .replace("&", "\\u0026")
    )


def _escape_html(text: str) -> str:
    """HTML-escape text for safe embedding."""
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;").replace('"', "&quot;")


# ─────────────────────────────────────────────────────────────────────────────
# CSS
# ─────────────────────────────────────────────────────────────────────────────

HARNESS_CSS = """
*, *::before, *::after { box-sizing: border-box; margin: 0; padding: 0; }

html, body {
  height: 100%;
  width: 100%;
  font-family: system-ui, -apple-system, BlinkMacSystemFont, 'Segoe UI', 'Roboto', 'Helvetica Neue', sans-serif;
  -webkit-font-smoothing: antialiased;
  -moz-osx-font-smoothing: grayscale;
  background: linear-gradient(135deg, #667eea 0%, #764ba2 100%);
}

[hidden] { display: none !important; }

/* ── Frame ── */
.preview-frame {
  width: 100%;
  min-height: 100%;
  margin: 0 auto;
  background: #ffffff;
}

.preview-container {
  display: flex;
  flex-direction: column;
  min-height: 100vh;
}

/* ── Loading ── */
.loading {
  position: fixed;
  inset: 0;
  display: flex;
  flex-direction: column;
  align-items: center;
  justify-content: center;
  color: white;
  text-align: center;
  z-index: 10;
}

.loading-spinner {
  width: 50px;
  height: 50px;
  border: 4px solid rgba(255, 255, 255, 0.3);
  border-top: 4px solid white;
  border-radius: 50%;
  animation: spin 1s linear infinite;
  margin-bottom: 20px;
}

.loading-title { font-size: 18px; font-weight: 600; margin-bottom: 8px; }
.loading-detail { font-size: 14px; opacity: 0.8; }

@keyframes spin {
  0% { transform: rotate(0deg); }
  100% { transform: rotate(360deg); }
}

/* ── Diagnostics ── */
.diagnostics {
  position: relative;
  max-width: 700px;
  margin: 40px auto;
  padding: 32px;
  background: white;
  color: #dc2626;
  border-radius: 16px;
  border: 2px solid #fecaca;
  box-shadow: 0 10px 25px rgba(0, 0, 0, 0.1);
  z-index: 20;
}

.diagnostics h3 { margin: 0 0 12px 0; font-size: 20px; font-weight: 700; }
.diagnostics p { margin: 12px 0; line-height: 1.6; color: #7f1d1d; }
.diagnostics ul { margin: 8px 0 8px 20px; color: #7f1d1d; line-height: 1.6; }
.diagnostics .failure-class { font-family: 'Monaco', 'Menlo', 'Courier New', monospace; font-size: 12px; color: #991b1b; }

.error-details {
  background: #fef2f2;
  padding: 16px;
  border-radius: 8px;
  margin-top: 20px;
  font-family: 'Monaco', 'Menlo', 'Courier New', monospace;
  font-size: 13px;
  white-space: pre-wrap;
  word-break: break-all;
  border-left: 4px solid #dc2626;
  color: #7f1d1d;
}

/* ── Success toast ── */
.success-message {
  position: fixed;
  bottom: 24px;
  right: 24px;
  background: linear-gradient(135deg, #10b981 0%, #059669 100%);
  color: white;
  padding: 14px 24px;
  border-radius: 12px;
  box-shadow: 0 10px 25px rgba(0, 0, 0, 0.2);
  font-weight: 600;
  font-size: 14px;
  opacity: 0;
  transform: translateY(100px);
  transition: all 0.4s cubic-bezier(0.68, -0.55, 0.265, 1.55);
  z-index: 1001;
  pointer-events: none;
}

.success-message.show { opacity: 1; transform: translateY(0); }
"""


# ─────────────────────────────────────────────────────────────────────────────
# Runtime: watchdog, compiler and mount
# ─────────────────────────────────────────────────────────────────────────────

HARNESS_RUNTIME = r"""
(function () {
  'use strict';

  const config = JSON.parse(document.getElementById('harness-config').textContent);
  const started = Date.now();

  const TRANSITIONS = config.watchdog.transitions;

  const harness = {
    state: config.watchdog.initial,
    failureClass: null,
    message: null,
    history: [config.watchdog.initial],
    warnings: config.warnings.map(function (w) { return w.code; })
  };
  window.__uiforgeHarness = harness;

  // ── State ──

  function post() {
    if (!window.parent || window.parent === window) return;
    try {
      window.parent.postMessage({
        source: 'uiforge-preview',
        state: harness.state,
        failureClass: harness.failureClass,
        message: harness.message
      }, '*');
    } catch (err) {
      console.warn('uiforge: postMessage failed', err);
    }
  }

  function transition(next, failureClass, message) {
    if (TRANSITIONS[harness.state].indexOf(next) === -1) return false;
    harness.state = next;
    harness.failureClass = failureClass || null;
    harness.message = message || null;
    harness.history.push(next);
    post();
    return true;
  }

  class HarnessFailure extends Error {
    constructor(failureClass, message, cause) {
      super(message);
      this.failureClass = failureClass;
      this.cause = cause || null;
    }
  }

  function failure(failureClass, message, cause) {
    return new HarnessFailure(failureClass, message, cause);
  }

  function classForState(state) {
    if (state === 'WAIT_COMPILER') return 'HarnessCompileTimeout';
    if (state === 'WAIT_ENTRY') return 'HarnessEntryMissing';
    return 'HarnessMountThrew';
  }

  function fail(err) {
    const f = err instanceof HarnessFailure
      ? err
      : failure(classForState(harness.state), String((err && err.message) || err), err);
    if (!transition('FAILED', f.failureClass, f.message)) return;
    clearTimeout(watchdog);
    console.error('uiforge: ' + f.failureClass + ': ' + f.message, f.cause || '');
    renderDiagnostics(f);
  }

  function withTimeout(promise, ms, onTimeout) {
    return new Promise(function (resolve, reject) {
      const timer = setTimeout(function () { reject(onTimeout()); }, Math.max(ms, 0));
      promise.then(
        function (value) { clearTimeout(timer); resolve(value); },
        function (err) { clearTimeout(timer); reject(err); }
      );
    });
  }

  const watchdog = setTimeout(function () {
    const seconds = Math.round(config.timeouts.entryMs / 1000);
    if (harness.state === 'WAIT_COMPILER') {
      fail(failure('HarnessCompileTimeout', 'Runtime libraries did not load within ' + seconds + 's'));
    } else if (harness.state === 'WAIT_ENTRY') {
      fail(failure('HarnessEntryMissing', 'App was not defined within ' + seconds + 's'));
    }
  }, config.timeouts.entryMs);

  // ── Runtime libraries ──

  function loadScript(url, optional) {
    return new Promise(function (resolve, reject) {
      const el = document.createElement('script');
      el.src = url;
      el.async = false;
      el.crossOrigin = 'anonymous';
      el.onload = function () { resolve(url); };
      el.onerror = function () {
        if (optional) {
          console.warn('uiforge: optional library failed to load', url);
          resolve(null);
        } else {
          reject(failure('HarnessCompileTimeout', 'Failed to load runtime library ' + url));
        }
      };
      document.head.appendChild(el);
    });
  }

  function loadRuntime() {
    return Promise.all(config.runtime.required.map(function (url) { return loadScript(url, false); }))
      .then(function () {
        return Promise.all(config.runtime.optional.map(function (url) { return loadScript(url, true); }));
      })
      .then(function () {
        if (!window.React || !window.ReactDOM || !window.Babel) {
          throw failure('HarnessCompileTimeout', 'React, ReactDOM or Babel is missing after loading');
        }
      });
  }

  // ── Compile & evaluate ──

  function unescapeSource(text) {
    return text.replace(/<\\(?=\/?script|!--)/gi, '<').replace(/--\\>/g, '-->');
  }

  function compile(source) {
    try {
      return window.Babel.transform(source, {
        presets: [['typescript', { isTSX: true, allExtensions: true }], 'react'],
        filename: 'App.tsx'
      }).code;
    } catch (err) {
      throw failure('HarnessCompileFailed', 'Babel could not compile the component: ' + err.message, err);
    }
  }

  function glyphIcon(name, glyph) {
    const Icon = function (props) {
      props = props || {};
      const size = props.size || 24;
      return React.createElement('span', {
        className: props.className,
        role: 'img',
        'aria-label': name,
        style: Object.assign({
          display: 'inline-flex',
          alignItems: 'center',
          justifyContent: 'center',
          width: size,
          height: size,
          fontSize: size * 0.8,
          lineHeight: 1
        }, props.style)
      }, glyph);
    };
    Icon.displayName = name;
    return Icon;
  }

  function capabilities() {
    const lucide = window.LucideReact || window.lucideReact || null;
    const bindings = { React: window.React, ReactDOM: window.ReactDOM };
    config.hooks.forEach(function (hook) { bindings[hook] = window.React[hook]; });
    Object.keys(config.icons).forEach(function (name) {
      bindings[name] = (lucide && lucide[name]) || glyphIcon(name, config.icons[name]);
    });
    return bindings;
  }

  function evaluate(compiled) {
    const bindings = capabilities();
    const names = Object.keys(bindings);
    let factory;
    try {
      // The block lets component code redeclare any injected name.
      factory = Function.apply(null, names.concat([
        '{\n' + compiled + '\n;return typeof App === "undefined" ? undefined : App;\n}'
      ]));
    } catch (err) {
      throw failure('HarnessCompileFailed', 'Compiled component is not valid JavaScript: ' + err.message, err);
    }
    try {
      return factory.apply(null, names.map(function (name) { return bindings[name]; }));
    } catch (err) {
      throw failure('HarnessEntryMissing', 'Evaluating the component failed before App was defined: ' + err.message, err);
    }
  }

  // ── Mount ──

  function preflight(App) {
    const trial = { status: 'pending', error: null, output: undefined };
    function TrialRender() {
      try {
        const isClass = App.prototype && App.prototype.isReactComponent;
        trial.output = isClass ? new App({}).render() : App({});
        trial.status = trial.output === null || trial.output === undefined || trial.output === false ? 'empty' : 'ok';
      } catch (err) {
        trial.status = 'threw';
        trial.error = err;
      }
      return null;
    }
    const root = ReactDOM.createRoot(document.createElement('div'));
    try {
      ReactDOM.flushSync(function () { root.render(React.createElement(TrialRender)); });
    } finally {
      root.unmount();
    }
    return trial;
  }

  function createBoundary() {
    return class Boundary extends React.Component {
      constructor(props) {
        super(props);
        this.state = { error: null };
      }
      static getDerivedStateFromError(error) {
        return { error: error };
      }
      componentDidCatch(error) {
        fail(failure('HarnessMountThrew', 'App threw while rendering: ' + error.message, error));
      }
      render() {
        return this.state.error ? null : this.props.children;
      }
    };
  }

  function mount(App) {
    const rootEl = document.getElementById('root');
    const Boundary = createBoundary();
    const element = function () { return React.createElement(Boundary, null, React.createElement(App)); };
    let root = ReactDOM.createRoot(rootEl);
    root.render(element());
    rootEl.hidden = false;
    document.getElementById('loading').hidden = true;

    setTimeout(function () {
      if (harness.state !== 'MOUNTING') return;
      if (rootEl.childNodes.length === 0) {
        console.warn('uiforge: root is empty after mount, retrying with a direct render');
        root.unmount();
        root = ReactDOM.createRoot(rootEl);
        ReactDOM.flushSync(function () { root.render(element()); });
      }
      if (harness.state !== 'MOUNTING') return;
      if (rootEl.childNodes.length === 0) {
        fail(failure('HarnessMountEmpty', 'App mounted but produced no DOM output'));
        return;
      }
      clearTimeout(watchdog);
      transition('RENDERED');
      showToast();
    }, config.timeouts.postMountMs);
  }

  function run() {
    const compilerBudget = config.timeouts.compilerMs;
    return withTimeout(loadRuntime(), compilerBudget, function () {
      return failure('HarnessCompileTimeout', 'Runtime libraries did not load within ' + Math.round(compilerBudget / 1000) + 's');
    })
      .then(function () {
        if (!transition('WAIT_ENTRY')) return undefined;
        const remaining = config.timeouts.entryMs - (Date.now() - started);
        const resolveEntry = new Promise(function (resolve) {
          const source = unescapeSource(document.getElementById('component-source').textContent);
          resolve(evaluate(compile(source)));
        });
        return withTimeout(resolveEntry, remaining, function () {
          return failure('HarnessEntryMissing', 'App was not defined in time');
        });
      })
      .then(function (App) {
        if (harness.state !== 'WAIT_ENTRY') return;
        if (typeof App !== 'function') {
          throw failure('HarnessEntryMissing', 'App is ' + (App === undefined ? 'not defined' : 'not a component (' + typeof App + ')'));
        }
        transition('MOUNTING');
        const trial = preflight(App);
        if (trial.status === 'threw') {
          throw failure('HarnessMountThrew', 'App threw during the pre-flight render: ' + (trial.error && trial.error.message), trial.error);
        }
        if (trial.status === 'empty') {
          throw failure('HarnessMountEmpty', 'App returned ' + String(trial.output));
        }
        mount(App);
      })
      .catch(fail);
  }

  window.addEventListener('error', function (event) {
    if (harness.state === 'MOUNTING') fail(event.error || event.message);
  });

  // ── Presentation ──

  function append(parent, tag, className, text) {
    const el = document.createElement(tag);
    if (className) el.className = className;
    if (text !== undefined) el.textContent = text;
    parent.appendChild(el);
    return el;
  }

  function renderDiagnostics(f) {
    document.getElementById('loading').hidden = true;
    document.getElementById('root').hidden = true;
    const panel = document.getElementById('diagnostics');
    panel.replaceChildren();
    append(panel, 'h3', null, '⚠️ ' + (config.failureTitles[f.failureClass] || 'Preview failed'));
    append(panel, 'p', 'failure-class', f.failureClass);
    append(panel, 'p', 'summary', f.message);
    if (f.cause && f.cause.stack) append(panel, 'pre', 'error-details', f.cause.stack);
    append(panel, 'p', null, 'Possible causes:');
    const causes = append(panel, 'ul', 'causes');
    config.likelyCauses.forEach(function (cause) { append(causes, 'li', null, cause); });
    if (config.warnings.length) {
      append(panel, 'p', null, 'Normalizer warnings:');
      const list = append(panel, 'ul', 'warnings');
      config.warnings.forEach(function (w) { append(list, 'li', null, w.text); });
    }
    append(panel, 'p', 'tip', 'Tip: open the browser console for the full error output.');
    panel.hidden = false;
  }

  function showToast() {
    const toast = document.getElementById('success-message');
    toast.classList.add('show');
    setTimeout(function () { toast.classList.remove('show'); }, 3000);
  }

  post();
  run();
})();
"""
