"""
Everything needed to run an image build on a BuildKit daemon: the credential relay the daemon authenticates through,
the local docker credential store it falls back to, and the glue that shells out to ``buildctl``.
"""
