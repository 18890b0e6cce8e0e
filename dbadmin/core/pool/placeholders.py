"""
Positional ``?`` placeholders → PyMySQL ``format`` paramstyle.

PyMySQL interpolates parameters with ``query % args``, so every literal ``%``
in the statement must be doubled, while only the ``?`` markers that sit outside
string literals, quoted identifiers and comments become ``%s``.
"""


def to_format_style(sql: str) -> str:
    out: list[str] = []
    i = 0
    length = len(sql)

    while i < length:
        ch = sql[i]

        if ch in ("'", '"', "`"):
            quote = ch
            out.append(ch)
            i += 1
            while i < length:
                c = sql[i]
                if c == "%":
                    out.append("%%")
                    i += 1
                    continue
                out.append(c)
                if c == quote:
                    if i + 1 < length and sql[i + 1] == quote:
                        out.append(quote)
                        i += 2
                        continue
                    i += 1
                    break
                if c == "\\" and quote != "`" and i + 1 < length:
                    nxt = sql[i + 1]
                    out.append("%%" if nxt == "%" else nxt)
                    i += 2
                    continue
                i += 1
            continue

        if ch == "#" or (ch == "-" and sql.startswith("-- ", i)):
            end = sql.find("\n", i)
            end = length if end == -1 else end + 1
            out.append(sql[i:end].replace("%", "%%"))
            i = end
            continue

        if ch == "/" and sql.startswith("/*", i):
            end = sql.find("*/", i + 2)
            end = length if end == -1 else end + 2
            out.append(sql[i:end].replace("%", "%%"))
            i = end
            continue

        if ch == "?":
            out.append("%s")
        elif ch == "%":
            out.append("%%")
        else:
            out.append(ch)
        i += 1

    return "".join(out)

