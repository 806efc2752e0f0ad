# scalegate

Building blocks for an HTTP interceptor that sits in front of workloads that
can scale to zero. It routes incoming requests to the scaled object that owns
them, counts pending requests and the request rate per host, and serves those
counts as JSON so that an external scaler can read them.

The package uses only the standard library.

## Installation

```
pip install scalegate
```

## Modules

- `scalegate.key` builds routing keys of the form `//<host>/<path>/`:
  `new_key(host, path)` drops any port and normalises slashes,
  `key_from_url`, `key_from_request(host, url)` (a non-empty Host header
  wins over the URL's host) and `keys_from_scaled_object`, which gives one
  key per host and path prefix of a `Routable` object.
- `scalegate.tablememory` holds `TableMemory`, an immutable routing table
  with `remember`, `recall`, `forget` and longest-prefix `route`. When two
  objects claim the same key, the one with the older `creation_timestamp`
  keeps it. Objects are identified by `NamespacedName`.
- `scalegate.table` keeps a live `Table` that is fed through `on_add`,
  `on_update` and `on_delete` and tells a `Counter` which hosts to track.
  `await table.start()` rebuilds the routes after every change until the
  task is cancelled; `has_synced` and `health_check` (raising
  `TableNotSyncedError`) report whether routes exist yet.
- `scalegate.buckets` provides `RequestsBuckets`, a sliding-window request
  counter with `record`, `window_average`, `is_empty` and `iter_buckets`.
- `scalegate.memory` defines the `CountReader` and `Counter` interfaces and
  `Memory`, an in-memory counter of concurrency and request rate per host.
  `scalegate.counts` defines `Count` and `Counts`, with `aggregate`,
  `to_json` and `from_json`.
- `scalegate.fakes` has `FakeCounter` (reporting every change on its
  `resized` queue) and `FakeCountReader` for tests of code that uses a
  counter.
- `scalegate.rpc` turns a `CountReader` into a WSGI application
  (`counts_app`) that answers at `/queue`, and fetches counts from such a
  server with `get_counts(base_url, timeout)`.
- `scalegate.endpoints` models service endpoints (`Endpoints`,
  `EndpointSubset`, `EndpointAddress`, `EndpointPort`) and lists backend
  URLs with `endpoints_for_service`; `fake_endpoints_for_url(s)` build
  endpoints from URLs.
- `scalegate.caches` has `FakeEndpointsCache` and `FakeServiceCache`,
  in-memory caches, and `FakeWatcher`, a hand-fed stream of `WatchEvent`s.
- `scalegate.scaledobject` builds scaled-object manifests as plain
  mappings with `new_scaled_object`, using a single `external-push`
  trigger.
- `scalegate.dial` retries TCP connections: `dial_with_retry` returns an
  async dial function that waits according to a `Backoff` between
  attempts; `min_total_backoff_duration` gives the least total wait.
- `scalegate.env` reads typed settings from environment variables
  (`get`, `get_or`, `get_int_or`, `resolve_env_bool`, `resolve_env_int`,
  `resolve_env_duration`, with durations such as `"8s"` or `"2h45m"`).
- `scalegate.concurrency` (`Signaler`, `AtomicValue`, `HealthChecker`,
  `with_timeout`, `is_ignored_error`), `scalegate.stopwatch` (`Stopwatch`,
  also a context manager) and `scalegate.requestcontext` (context-local
  logger, scaled object and upstream target) hold small helpers.

## Example

```python
from datetime import timedelta
from wsgiref.simple_server import make_server

from scalegate.memory import Memory
from scalegate.rpc import counts_app

memory = Memory()
memory.ensure_key("default/app", timedelta(minutes=1), timedelta(seconds=1))
memory.increase("default/app", 1)
print(memory.current().aggregate())

with make_server("localhost", 9090, counts_app(memory)) as server:
    server.handle_request()
```

## What it does not do

The package ships no command and no HTTP server of its own: `counts_app` is
a WSGI application that you serve with the server of your choice. It does
not talk to a cluster API either; scaled objects, endpoints and services
are passed in by the caller, and the caches provided are in-memory ones.

## Running the tests

```
pip install -e ".[test]"
pytest
```