import datetime

import pytest
import pytz

from scheduled_messages.data_queries import (
    DataQuery, DataQueryProvider, available_queries, is_birthday_on, project_birthday, query_metadata,
)
from scheduled_messages.exceptions import QueryError

MEXICO = pytz.timezone('America/Mexico_City')


@pytest.fixture
def members(django_user_model):
    def _member(username, month, day, **extra):
        return django_user_model.objects.create_user(
            username=username, password='secret-pass', birthday_month=month, birthday_day=day, **extra,
        )

    return {
        'ana': _member('ana', 5, 10, discord_uid='1001', display_name='Ana'),
        'bruno': _member('bruno', 5, 10),
        'carla': _member('carla', 5, 22, discord_uid='1003'),
        'inactive': _member('dora', 5, 10, is_active=False),
        'leap': _member('leo', 2, 29, discord_uid='1005'),
    }


@pytest.mark.django_db
def test_birthdays_today_uses_message_timezone(members):
    # 2024-05-11 03:00 UTC is still May 10 in Mexico City
    reference = pytz.utc.localize(datetime.datetime(2024, 5, 11, 3, 0))

    variables = DataQueryProvider().execute('birthdays_today', reference, 'America/Mexico_City')

    assert [birthday.handle for birthday in variables['birthdays']] == ['ana', 'bruno']
    assert variables['birthday_count'] == 2
    assert variables['current_month'] == 5
    assert variables['current_day'] == 10


@pytest.mark.django_db
def test_birthday_projection_fields(members):
    reference = MEXICO.localize(datetime.datetime(2024, 5, 10, 9, 0))

    ana, bruno = DataQueryProvider().execute('birthdays_today', reference, 'America/Mexico_City')['birthdays']

    assert ana.mention == '<@1001>'
    assert ana.display_name == 'Ana'
    assert ana.month_name == 'May'
    assert ana.today is True
    assert str(ana) == 'May 10'
    assert bruno.mention == '@bruno'
    assert bruno.display_name == 'bruno'
    assert not hasattr(ana, 'password')
    assert not hasattr(ana, 'email')


@pytest.mark.django_db
def test_leap_day_birthdays_celebrated_on_feb_28_in_common_years(members):
    reference = MEXICO.localize(datetime.datetime(2023, 2, 28, 9, 0))

    variables = DataQueryProvider().execute('birthdays_today', reference, 'America/Mexico_City')

    assert [birthday.handle for birthday in variables['birthdays']] == ['leo']


@pytest.mark.django_db
def test_all_birthdays_lists_active_members_in_calendar_order(members):
    reference = MEXICO.localize(datetime.datetime(2024, 5, 10, 9, 0))

    variables = DataQueryProvider().execute('birthdays', reference, 'America/Mexico_City')

    assert [birthday.handle for birthday in variables['birthdays']] == ['leo', 'ana', 'bruno', 'carla']
    assert [birthday.in_current_month for birthday in variables['birthdays']] == [False, True, True, True]


def test_empty_query_key_returns_no_variables():
    assert DataQueryProvider().execute('', pytz.utc.localize(datetime.datetime(2024, 1, 1)), 'UTC') == {}


def test_unknown_query_key_warns_and_returns_no_variables(caplog):
    variables = DataQueryProvider().execute('weather', pytz.utc.localize(datetime.datetime(2024, 1, 1)), 'UTC')

    assert variables == {}
    assert 'Unknown data query type: weather' in caplog.text


def test_failing_query_raises_query_error():
    def broken(reference):
        raise RuntimeError('database went away')

    provider = DataQueryProvider({'broken': DataQuery(key='broken', run=broken, metadata={})})

    with pytest.raises(QueryError, match='database went away'):
        provider.execute('broken', pytz.utc.localize(datetime.datetime(2024, 1, 1)), 'UTC')


def test_query_receives_local_reference():
    seen = []

    def capture(reference):
        seen.append(reference)
        return {'ok': True}

    provider = DataQueryProvider({'capture': DataQuery(key='capture', run=capture, metadata={})})
    provider.execute('capture', pytz.utc.localize(datetime.datetime(2024, 1, 1, 3, 0)), 'America/Mexico_City')

    assert seen[0].date() == datetime.date(2023, 12, 31)


def test_once_per_day_policy():
    provider = DataQueryProvider()

    assert provider.once_per_day('birthdays_today') is True
    assert provider.once_per_day('birthdays') is False
    assert provider.once_per_day('') is False


def test_metadata_is_a_copy():
    metadata = query_metadata('birthdays_today')
    metadata['variables'].clear()

    assert query_metadata('birthdays_today')['variables']
    assert query_metadata('missing') is None
    assert {query['value'] for query in available_queries()} == {'birthdays_today', 'birthdays'}


def test_is_birthday_on():
    assert is_birthday_on(2, 29, datetime.date(2023, 2, 28))
    assert not is_birthday_on(2, 29, datetime.date(2024, 2, 28))
    assert is_birthday_on(2, 29, datetime.date(2024, 2, 29))


def test_project_birthday_without_discord_uid(django_user_model):
    user = django_user_model(username='eve', birthday_month=12, birthday_day=24)

    birthday = project_birthday(user, datetime.date(2024, 12, 1))

    assert birthday.mention == '@eve'
    assert birthday.in_current_month is True
    assert birthday.today is False
