# oidcflow

Building blocks for command-line OpenID Connect clients:

- **Endpoint discovery** — fetch an issuer's `/.well-known/openid-configuration`,
  check the issuer, and fill in whichever endpoints you did not set yourself.
- **Redirect callback server** — a small local HTTP server that receives the
  authorization response (`code`, `state`, `error`, `error_description`) and
  answers the browser with a success or error page.
- **System browser** — open a URL with the platform's own opener
  (`xdg-open` on Linux, `open` on macOS, `rundll32` on Windows).

## Installation

```
pip install oidcflow
```

## Discovering endpoints

```python
from oidcflow.config import Config, urllib_fetch

config = Config(issuer_url="https://example.com")
config.discover_endpoints(urllib_fetch)

print(config.authorization_endpoint)
print(config.token_endpoint)
```

`Config.discover` returns a `DiscoveryConfiguration` without changing the
config. When `discovery_endpoint` is set, that URL is fetched as-is and the
issuer check is skipped. Otherwise the issuer in the document must match
`issuer_url` exactly, or `IssuerInvalidError` is raised. A status other than
200 or an unparsable document raises `DiscoveryError`.

`discover_endpoints` only fills endpoints that are still empty. When no auth
method is set, it picks the first supported method the server advertises.

The `fetch` argument is any callable `fetch(url, headers)` that returns an
`HttpResponse`. This lets you plug in your own HTTP client, or a fake one in
tests.

## Receiving the redirect

```python
import threading
from oidcflow.callback import CallbackServer

server = CallbackServer("http://localhost:8080/callback")
stop = threading.Event()
threading.Thread(target=server.start, args=(stop,), daemon=True).start()

response = server.wait_for_callback(None, 300)
stop.set()
print(response.code, response.state)
```

`wait_for_callback(cancel, timeout)` returns the first `CallbackResponse`. It
raises `CallbackTimeoutError` when the timeout runs out. If the optional
`cancel` event is set first, the wait is abandoned.

## Opening a browser

```python
from oidcflow.browser import new_browser, BrowserError

try:
    new_browser().open("https://example.com/authorize?...")
except BrowserError as exc:
    print(f"open this URL yourself: {exc}")
```

A `SystemBrowser` takes its command runner and opener as attributes, so both
can be replaced, for example in tests.

## Version string

`oidcflow.version.build_version(main_version, settings)` builds a version
label from a release version and VCS settings (`vcs.revision`,
`vcs.modified`). An example result is `v1.2.0-rev-abc1234-dirty`.