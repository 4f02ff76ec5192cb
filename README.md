# percas

Building blocks for a cache server that speaks plain HTTP. Every key is a
path and every value is an opaque byte string. The package provides the
canonical responses, the `aiohttp` middlewares, the metric set, a periodic
metrics reporter and the logging setup that such a server is made of.

## What the package does not include

The package has no request handlers for `GET`, `PUT` and `DELETE`, no code
that binds a socket and starts the server, no storage engine, no build or
version information and no command-line tool. To serve requests you write the
handlers and the `aiohttp` application yourself and supply an engine object
(see `percas.context`).

## Modules

### `percas.responses`

Functions that return `aiohttp.web.Response` objects:

| Function            | Status | Body                                   |
|---------------------|--------|----------------------------------------|
| `get_success(body)` | `200`  | the bytes, `application/octet-stream`  |
| `get_not_found()`   | `404`  | `404 Not Found`, `text/plain`          |
| `put_success()`     | `201`  | `201 Created`, `text/plain`            |
| `put_bad_request()` | `400`  | `400 Bad Request`, `text/plain`        |
| `delete_success()`  | `204`  | empty                                  |
| `too_many_requests()` | `429` | `429 Too Many Requests`, `text/plain` |

### `percas.middleware`

New-style `aiohttp` middlewares, usable in `web.Application(middlewares=[...])`:

- `LoggerMiddleware()` logs each request at debug level and logs failures at
  error level. HTTP 404 errors are not logged as errors.
- `RateLimitMiddleware(run_limit=None, wait_limit=None)` lets at most
  `run_limit` requests run at once (default: one hundred per CPU) and at most
  `wait_limit` requests be in flight (default: five times `run_limit`). A
  request that finds no free slot gets `429` at once. Limits below 1 raise
  `ValueError`.
- `ClusterProxyMiddleware(proxy=None, factory=None)` reads the key from the
  route's `key` match variable (a request without one gets `400`). With no
  proxy, every request is handled locally. Otherwise `proxy.route(key)` must
  return a `RouteDest`; for a remote destination, `factory.make_client(url)`
  gives a client with async `get(key)`, `put(key, body)` and `delete(key)`.
  `GET`, `PUT` and `DELETE` are forwarded. If the client raises
  `TooManyRequestsError`, the caller gets `429`. Any other failure is logged
  and the request is handled locally. Other methods are always handled
  locally.

`RouteDest.local()` and `RouteDest.remote(addr)` build destinations.
`is_local` tells them apart.

```python
from aiohttp import web

from percas.middleware import LoggerMiddleware, RateLimitMiddleware
from percas.responses import get_not_found, get_success

store: dict[str, bytes] = {}

async def get(request: web.Request) -> web.Response:
    value = store.get(request.match_info["key"])
    return get_not_found() if value is None else get_success(value)

app = web.Application(middlewares=[LoggerMiddleware(), RateLimitMiddleware()])
app.router.add_get("/{key:.+}", get)
```

### `percas.context`

`PercasContext(engine)` is a frozen holder for the storage engine. The engine
is expected to offer async `get(key)`, and also `put(key, value)`,
`delete(key)`, `capacity()` and `statistics()`.

### `percas.scheduled`

- `MetricsSnapshot` holds cumulative disk IO figures: `disk_read_bytes`,
  `disk_write_bytes`, `disk_read_ios` and `disk_write_ios`.
  `MetricsSnapshot.from_statistics(stats)` reads them from attributes or
  zero-argument methods. `a.difference(b)` subtracts field by field and raises
  `ValueError` if any figure went down.
- `ReportMetricsAction(ctx, metrics=None)` records the engine's capacity in
  the storage `used` and `capacity` gauges. It also adds the IO deltas since
  the last run to the storage IO counters, labelled `read` and `write`.
  `await action.run()` reports once.
  `action.schedule_with_fixed_delay(interval, shutdown)` starts a task that
  reports at once and again `interval` after each run. The interval is in
  seconds or a `timedelta`. The task stops when the `asyncio.Event` called
  `shutdown` is set.

### `percas.metrics`

In-process instruments keyed by label sets: `Counter` (`add`, `value`),
`Gauge` (`record`, `value`) and `Histogram` (`record`, `count`,
`bucket_counts`). `Meter` creates and owns them by name.
`GlobalMetrics.get()` returns the process-wide set:

- `storage.capacity`, `storage.used`, `storage.io.count` and `storage.io.bytes`
- `operation.count`, `operation.bytes` and `operation.duration`. The
  durations are in seconds, with bucket boundaries from 0.1 ms to 5 s.

```python
from percas.metrics import GlobalMetrics, OperationMetrics

metrics = GlobalMetrics.get().operation
labels = OperationMetrics.operation_labels("get", "ok")
metrics.count.add(1, labels)
print(metrics.count.value(labels))
```

The operation names are `get`, `put` and `delete`. The statuses are `ok`,
`not_found` and `error`.

### `percas.telemetry`

`init(service_name, TelemetryConfig(logs=LogsConfig(...)))` installs handlers
on the root logger and returns them. It installs nothing if an earlier call
already did.

- `FileLogsConfig(dir, filter="info", max_files=64)` writes JSON lines to
  `<dir>/<service_name>.log`. The file rotates hourly and `max_files` old
  files are kept.
- `StderrLogsConfig(filter="info")` writes text lines to stderr. When the
  `PERCAS_LOG` environment variable is set, its value replaces the filter.

`LogsConfig.disabled()` turns both off. Filters are comma-separated
directives. A directive is a level (`off`, `error`, `warn`, `info`, `debug`,
`trace`), a logger name, or `name=level`. The most specific matching name
wins. A trailing `/regex` also requires the message to match. A filter that
cannot be parsed raises `ValueError`.

### `percas.styled`

`styled()` returns a `Style` for each part of command-line help output:
`usage`, `header`, `literal`, `invalid`, `error`, `valid` and
`placeholder`. `Style.render(text)` wraps text in the matching ANSI escape
codes.

## Tests

The test suite uses the `test` extra, which installs `pytest` and
`pytest-asyncio`.