# -*- coding: utf-8 -*-
"""
ContactBot Interfaces
"""
