from __future__ import annotations

import textwrap

JOIN_READ = textwrap.dedent(
    '''
    import effects


    @effects.declare(
        "args=(a as A, b as B), side_effects=(read_file(A + '/' + B)), returns=(A + '/' + B)"
    )
    def join_read(a, b):
        ...
    '''
).lstrip()


def with_join_read(body: str) -> str:
    return JOIN_READ + "\n\n" + textwrap.dedent(body).lstrip()
