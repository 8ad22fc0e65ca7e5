"""tourbridge: Pokemon Showdown tournaments mirrored into Discord."""
