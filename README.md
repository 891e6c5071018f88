# godoxy

Building blocks of a reverse proxy that takes its routes from Docker
containers and configuration files, as a plain Python library.

## Modules

| Module | Purpose |
| --- | --- |
| `godoxy.errors` | Immutable errors with subjects and nested causes, and a thread-safe `Builder` that collects many of them and renders them as an indented tree |
| `godoxy.common` | Command names, well-known paths and timeouts, default ports by service and image name, password hashing and JWT key helpers |
| `godoxy.log` | Logging setup whose `MultilineFormatter` indents continuation lines of a message under its first line |
| `godoxy.homepage` | Dashboard `Item`s grouped by category in a `HomepageConfig`, with built-in categories for common self-hosted apps |
| `godoxy.config_types` | Dataclasses for the main configuration (`Config`, `Providers`, `AutoCertConfig`, `HomepageSettings`) and their defaults |
| `godoxy.docker_labels` | Label name constants, `parse_label` and `apply_label` for `proxy.<alias>.<attribute>` labels, including nested ones |
| `godoxy.docker_container` | A `Container` model built from a Docker container list entry (`from_docker`) or inspect result (`from_json`) |
| `godoxy.idlewatcher_config` | `parse_duration` and `validate_config` for idle-timeout, wake-timeout, stop-method and stop-signal settings |
| `godoxy.autocert` | Autocert settings validation, certificate expiry reading, saving, loading and renewal decisions |

## Errors

Every change to an error returns a new one; the error you started from stays
as it was.

```python
from godoxy import errors

failure = errors.new("generic failure")
detailed = failure.subject("route app").withf("port %s is not open", 8080)

builder = errors.Builder("config load error")
builder.add(detailed)
builder.add(errors.new("missing field 'domains'"))

if builder.has_error():
    print(builder.error())
```

A builder holding several errors prints them as a tree, with nested errors
indented under their headline:

```
config load error
  • route app: generic failure
    • port 8080 is not open
  • missing field 'domains'
```

(The last subject is highlighted in red with terminal escape codes.)

`matches` tells whether an error, or anything nested in it, is a given error;
`errors.error_is(err, target)` does the same for any exception:

```python
err1 = errors.new("err1")
combined = err1.with_extra(errors.new("err2"))
assert combined.matches(err1)
```

`errors.collect(builder, fn, *args)` calls `fn`, records any exception it
raises in the builder and returns `None` in that case.

## Command-line arguments

`common.get_args(argv)` reads the first positional argument as the command and
exits with a message if it is not one of `common.VALID_COMMANDS`.
`common.validate_command` raises `ValueError` for an unknown command.

## Docker labels

Labels are read as `namespace.target.attribute`; any further parts form a
nested label:

```python
from godoxy.docker_labels import parse_label

label = parse_label("proxy.app.middlewares.redirect.bypass", "true")
print(label.namespace, label.target, label.attribute)  # proxy app middlewares
print(label.value.namespace, label.value.attribute)    # redirect bypass
```

`apply_label(obj, label)` sets the field named by the label's attribute on a
mapping, dataclass or plain object. A nested label is merged into a mapping
field as `field[namespace][attribute] = value`, keeping entries already there.
An unknown field raises an error naming the field and the label.

## Containers

`from_docker(summary, docker_host)` turns a container list entry (a mapping in
Docker API form) into a `Container`: name, image name without registry or tag,
aliases, public and private port mappings, IP addresses, whether it looks like
a database, and the idle-watcher labels, which are removed from `labels`.

## Idle watcher settings

```python
from godoxy.idlewatcher_config import parse_duration

print(parse_duration("1m30s"))  # 0:01:30
```

`validate_config(container)` returns an `IdlewatcherConfig`. A container with no
idle timeout gets only its identity filled in; otherwise every timeout, the
stop method and the stop signal are checked, and one error listing every
invalid setting is raised.

## Certificates

```python
from godoxy.autocert import get_cert_expiries

with open("certs/cert.crt", "rb") as fh:
    expiries = get_cert_expiries(fh.read())
for domain, not_after in expiries.items():
    print(domain, not_after)
```

`new_config(cfg)` fills in the default certificate and key paths and the
`local` provider. `get_provider(cfg, obtainer)` checks the settings and returns
a `Provider`. Its `setup()` loads the certificate from disk, asks the obtainer
for a new one when the file is missing, and starts a background check that
renews the certificate one month before it expires or when its domains no
longer match the configuration. The `local` provider uses the certificate on
disk as it is and never renews it.

## What this package does not do

- It runs no proxy and no API server, and installs no command to start one.
- It does not connect to Docker; container data must be passed in as mappings.
- It does not read YAML files; `Config.from_dict` takes already parsed data.
- It contains no ACME client: obtaining a certificate is done by the
  `obtainer(user, domains, options) -> (cert_pem, key_pem)` callable you pass
  to `get_provider`; without one, `obtain_cert` raises an error.

## Requirements

Python 3.10 or newer and the `cryptography` distribution.