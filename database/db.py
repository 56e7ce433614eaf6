"""Proxy базы данных; привязывается в :func:`database.init.init_from_env`."""

from peewee import Proxy

db = Proxy()
