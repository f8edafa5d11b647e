"""Builders for Envoy v3 resources as plain dictionaries."""