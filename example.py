"""Example usage of the redis_tables library.

Needs a Redis server on localhost:6379.
"""

import asyncio
import time

from redis_tables import setup_table

Table = setup_table(conf={"host": "localhost", "port": 6379}, prefix="example:")


@Table.register
class Author(Table):
    _key = "username"
    _keymap = {
        "username": {"type": "string", "isRequired": True, "min": 3, "max": 32},
        "email": {"type": "string", "isRequired": True},
        "password": {"type": "string", "isPrivate": True},
        "created": {"type": "number", "default": time.time},
        "books": {"model": "Book", "rel": "many", "remoteKey": "author"},
    }


@Table.register
class Book(Table):
    _key = "isbn"
    _keymap = {
        "isbn": {"type": "string", "isRequired": True},
        "title": {"type": "string", "isRequired": True},
        "pages": {"type": "number", "min": 1},
        "tags": {"type": "object", "default": list},
        "author": {"type": "string", "model": "Author", "rel": "one"},
    }


async def main():
    print("Creating authors and books...")
    for username, email in [("alice", "alice@example.com"), ("bob", "bob@example.com")]:
        if not await Author.exists(username):
            await Author.create({"username": username, "email": email, "password": "hunter2"})

    books = [
        {"isbn": "978-0", "title": "First Steps", "pages": 120, "author": "alice"},
        {"isbn": "978-1", "title": "Second Thoughts", "pages": 340, "author": "alice"},
        {"isbn": "978-2", "title": "Third Time", "pages": 88, "author": "bob", "tags": ["short"]},
    ]
    for book in books:
        if not await Book.exists(book):
            await Book.create(book)

    print("\nAll authors:")
    for author in await Author.list_detail():
        titles = ", ".join(book.title for book in author.books)
        print(f"  {author}: {titles}")
        print(f"    {author.to_json()}")

    print("\nBooks by alice:")
    for book in await Book.findall({"author": "alice"}):
        print(f"  {book.isbn} {book.title} ({book.pages} pages)")

    book = await Book.get("978-2")
    await book.update({"title": "Third Time Lucky"})
    print(f"\nRenamed title: {(await Book.get('978-2')).title}")

    await Table.schema.aclose()


if __name__ == "__main__":
    asyncio.run(main())
