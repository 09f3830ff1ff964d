from tresor.utils.balance_guard import check_balance_sufficiency


def test_debit_within_balance_is_sufficient():
    result = check_balance_sufficiency(5000, False, -5000)
    assert result.sufficient is True
    assert result.reason is None


def test_debit_beyond_balance_is_insufficient():
    result = check_balance_sufficiency(5000, False, -5001, method_name="Orange Money")
    assert result.sufficient is False
    assert result.current_balance == 5000
    assert result.reason == "Insufficient balance on Orange Money: current balance 5000, amount required 5001"


def test_overdraft_methods_always_pass():
    assert check_balance_sufficiency(-20000, True, -100000).sufficient is True


def test_credit_on_negative_balance_still_checked():
    # The rule applies to the resulting balance, whatever the sign of the delta
    assert check_balance_sufficiency(-1000, False, 400).sufficient is False
    assert check_balance_sufficiency(-1000, False, 1000).sufficient is True


def test_default_label():
    assert "payment method" in check_balance_sufficiency(0, False, -1).reason
