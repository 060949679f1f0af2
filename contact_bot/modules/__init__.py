# -*- coding: utf-8 -*-
"""
ContactBot Modules
"""
