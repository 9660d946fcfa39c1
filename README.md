# aquarius

A small asyncio TCP framework. Outgoing messages are cut into frames of at
most 4096 body bytes, each preceded by a one-byte flag and the protocol number
as four little-endian bytes; the receiving side joins the frames again and
routes the complete message, by protocol number, to a handler context. Servers
and clients can run plain or over TLS.

No third-party libraries are needed.

## Install

```
pip install .
pip install ".[test]"   # with pytest and pytest-asyncio
```

## Modules

- `aquarius.flex_buffer` – `FlexBuffer`, a growable byte buffer with a put
  position and a get position: `save(data)`, `load(size)` (raises
  `ValueError` when too few bytes are stored), `data()`, `commit`, `consume`,
  `normalize`, `ensure`, seeking with `seekoff`/`seekpos` (`SeekDir`,
  `OpenMode`), and a rollback mark with `start`, `failed`, `success`, `close`.
- `aquarius.package_processor` – `PackageProcessor.write(proto, buffer)`
  splits a buffer into frames; `read(buffer, session)` takes one frame and,
  when it completes a message, hands the joined body to the context router
  and returns it. A message may span at most 63 frames; `write` raises
  `ValueError` beyond that or for a protocol number that does not fit in
  four bytes. `Mvcc`, `Block` and `Sequence` describe frames and partial
  messages.
- `aquarius.router` – `Router`, a key-to-callable table (`register`,
  `invoke`), with one shared instance per class from `Router.instance()`.
  Routers refuse to be copied.
- `aquarius.context_router` – `ContextRouter.regist(proto, request_type,
  context_type)`, `auto_register(...)` for the shared router, and
  `invoke_context(proto, buffer, session)`.
- `aquarius.context` – `BasicContext`, `ServerContext`, `ClientContext` and
  the `server_context` / `client_context` decorators.
- `aquarius.session_service` – `SessionService` (plain TCP) and
  `SslSessionService` (TLS): connect, read, write, keep-alive, no-delay and
  peer address/port.
- `aquarius.session` – `Session`, which reads frames from a service, passes
  them to its `PackageProcessor`, and sends packets with `send_packet`.
- `aquarius.acceptor` – `AsyncAcceptor`, a listening IPv4 port whose
  `accept()` returns `(reader, writer)` pairs.
- `aquarius.io_pool` – `IoServicePool`, event loops handed out round-robin and
  run on one thread each; a pool size of 0 raises `RuntimeError`.
- `aquarius.server` – `Server(port, pool_size, name="", ssl_context=None)`.
- `aquarius.client` – `Client(host, port, ssl_context=None)`.
- `aquarius.ssl_factory` – `create_server_context(cert_dir)` and
  `create_client_context(cert_dir)`, reading `server.crt`, `server.key` and
  `dh512.pem` from `cert_dir` (default: `crt` under the working directory).
- `aquarius.errors` – the `Package` result codes, `ErrorCategory` and
  `error_message(code)` (`"unknown error"` for codes it does not know).
- `aquarius.crc` – `crc32(data)`, the standard CRC-32 as an unsigned int.
- `aquarius.log` – `init_logger(log_dir="logs", console=True)` sets up the
  `aquarius` logger with a rotating `file.log` (INFO and above) and an
  optional console handler.

## Message types

A message type is a class with a `NUMBER` attribute (its protocol number), a
no-argument constructor, `to_binary()` returning a `FlexBuffer`, and
`from_binary(buffer)`. Response types also need `set_result(result)`.

```python
from aquarius.flex_buffer import FlexBuffer

class EchoRequest:
    NUMBER = 1001

    def __init__(self):
        self.content = ""

    def to_binary(self):
        buffer = FlexBuffer()
        buffer.save(self.content.encode())
        return buffer

    def from_binary(self, buffer):
        self.content = buffer.load(len(buffer)).decode()


class EchoResponse(EchoRequest):
    NUMBER = 1002

    def set_result(self, result):
        self.result = result
```

## Handlers

`server_context` turns a function into a `ServerContext` class and registers
it for the request's `NUMBER` with the shared `ContextRouter`. The function
receives the context and returns a result code; the response is then sent back
over the session with that code set.

```python
from aquarius.context import server_context, client_context

@server_context(EchoRequest, EchoResponse)
def echo(ctx):
    ctx.response.content = ctx.message.content
    return 0

@client_context(EchoResponse)
def echoed(ctx):
    print(ctx.message.content)
    return 0
```

Both sides of a connection use the same shared router, so handlers registered
in a process serve whichever of its servers and clients receive that number.

## Server and client

```python
import threading
from aquarius.server import Server
from aquarius.client import Client

server = Server(10123, 4, "echo server")
threading.Thread(target=server.run).start()
server.wait_ready(5)                 # returns the listening port

client = Client("127.0.0.1", "10123")
request = EchoRequest()
request.content = "hello world!"
client.send_request(request)         # sent once the connection is made
runner = threading.Thread(target=client.run)
runner.start()
client.wait_connected(5)

# ... later
client.stop()
runner.join()
server.stop()
```

`Server.run()` blocks until `stop()`; run on the main thread it also stops on
SIGINT and SIGTERM. `Client.run()` returns when the client's work is done or
after `stop()`. Pass an `ssl.SSLContext` as `ssl_context` to either to use TLS.

## Command line

```
aquarius-echo server [--port 10123] [--pool 10] [--name NAME]
aquarius-echo client [--host 127.0.0.1] [--port 10123]
aquarius-echo --log-dir logs server
```

`server` serves until interrupted. `client` connects, prints `Hello World!`
and stops.

## Limits

- The command registers no handlers, so the server accepts connections but
  does not answer messages, and the client sends none.
- Each read from a connection is taken as exactly one frame; frames that
  arrive split or merged in one read are not separated.
- There is no request timeout or retry; a context's `timeout` is stored but
  not enforced.