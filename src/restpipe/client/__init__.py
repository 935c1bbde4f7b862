"""Request assembly, transport and response dispatch.

Modules:
    request: :class:`RequestSpec` (per-request configuration) and
        :class:`PreparedRequest` (the assembled request).
    interceptors: :class:`Interceptor` and the ordered
        :class:`InterceptorChain` that compression and signers plug into.
    transport: :class:`Transport` protocol and the httpx-backed
        :class:`HttpxTransport`.
    response: :class:`ResponseDecorator`, the response seen by handlers.
    dispatch: :class:`StatusHandlerTable` and the default handlers.
    assembler: :class:`RequestAssembler`, which ties everything together.

The package namespace stays empty so codec modules can import
:mod:`restpipe.client.interceptors` without pulling in the assembler;
import from the submodules or from :mod:`restpipe` directly::

    from restpipe import RequestAssembler

    assembler = RequestAssembler("https://api.example.com")
    data = assembler.get(path="/users")
"""
