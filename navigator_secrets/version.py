"""Navigator Secrets Meta information.
   Navigator Secrets derives scoped read tokens and signed URLs from
   long-lived secrets to guard bucket assets.
"""
__title__ = 'navigator_secrets'
__description__ = (
   'Navigator Secrets derives scoped read tokens and signed URLs '
   'from long-lived secrets to guard bucket assets.'
)
__version__ = '0.1.0'
__copyright__ = 'Copyright (c) 2023 Jesus Lara'
__author__ = 'Jesus Lara'
__author_email__ = 'jesuslarag@gmail.com'
__license__ = 'Apache-2.0'
__url__ = 'https://github.com/phenobarbital/navigator-secrets'
