"""Domain services. Each returns tagged results; HTTP mapping lives in passdesk.api."""
